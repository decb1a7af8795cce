"""Narrative description synthesis.

Renders an answer set into the single text submitted as a job's
description. Line order, labels and markers all come from the vertical
schema; nothing here knows about a particular vertical.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from chamby.booking.conditions import matches
from chamby.booking.models import FieldDefinition, NarrativeLine, VerticalSchema
from chamby.core.types import FieldType, LineStyle

NOT_ANSWERED = "N/A"


def option_text(field: FieldDefinition, value: str, answers: Mapping[str, Any]) -> str:
    """Label for one option, substituting companion text for sentinels."""
    companion = field.companion_for(value)
    if companion is not None:
        text = str(answers.get(companion.field) or "").strip() or companion.fallback
        return companion.template.format(text=text)
    return field.options.get(value, value)


def value_parts(field: FieldDefinition, answers: Mapping[str, Any]) -> list[str]:
    """Display parts for a field's current value; empty when unanswered."""
    value = answers.get(field.id, field.default)
    kind = field.field_type
    if kind == FieldType.SINGLE_SELECT:
        return [option_text(field, value, answers)] if value is not None else []
    if kind == FieldType.MULTI_SELECT:
        return [option_text(field, v, answers) for v in value]
    if kind == FieldType.TEXT:
        text = (value or "").strip()
        return [text] if text else []
    if kind == FieldType.DATE:
        return [value.strftime("%d/%m/%Y")] if value is not None else []
    uploaded = sum(1 for p in value if p.uploaded)
    return [str(uploaded)] if uploaded else []


def display_value(field: FieldDefinition, answers: Mapping[str, Any]) -> str:
    return ", ".join(value_parts(field, answers))


def _render_line(
    line: NarrativeLine, field: FieldDefinition, answers: Mapping[str, Any]
) -> str | None:
    parts = value_parts(field, answers)
    if not parts:
        if not line.required:
            return None
        parts = [NOT_ANSWERED]

    lead = line.indent + (f"{line.glyph} " if line.glyph else "")
    if line.style == LineStyle.BULLETS and parts != [NOT_ANSWERED]:
        bullets = "\n".join(f"  • {p}" for p in parts)
        text = f"{lead}{line.heading or field.label}:\n{bullets}"
    elif line.heading:
        text = f"{lead}{line.heading}: {', '.join(parts)}"
    else:
        text = f"{lead}{', '.join(parts)}"
    return text


def synthesize(answers: Mapping[str, Any], schema: VerticalSchema) -> str:
    """Compose the narrative description for a completed answer set."""
    lines: list[str] = []
    for line in schema.narrative:
        if line.when is not None and not matches(line.when, answers):
            continue
        field = schema.field(line.field)
        rules = [
            r for r in schema.annotations
            if r.target == line.field and matches(r.when, answers)
        ]

        text = _render_line(line, field, answers)
        if text is not None:
            suffix = "".join(r.suffix for r in rules if r.suffix)
            if suffix:
                head, sep, tail = text.partition("\n  • ")
                text = head + suffix + sep + tail
            lines.append(("\n" if line.break_before else "") + text)

        lines.extend(r.line for r in rules if r.line)
    return "\n".join(lines)


def summary_rows(answers: Mapping[str, Any], schema: VerticalSchema) -> list[tuple[str, str]]:
    """(label, value) rows for the summary screen; unanswered fields are left out."""
    rows: list[tuple[str, str]] = []
    for line in schema.narrative:
        if line.when is not None and not matches(line.when, answers):
            continue
        field = schema.field(line.field)
        value = display_value(field, answers)
        if value:
            rows.append((line.heading or field.label, value))

    photo_key = schema.photo_field
    if photo_key is not None:
        photos = schema.field(photo_key)
        uploaded = display_value(photos, answers)
        if uploaded:
            rows.append((photos.label, uploaded))
    return rows
