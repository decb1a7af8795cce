"""Job record construction from a completed answer set."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from chamby.booking.conditions import matches
from chamby.booking.models import JobRecord, VerticalSchema
from chamby.booking.narrative import NOT_ANSWERED, display_value, option_text, synthesize
from chamby.core.types import FieldType


def is_urgent(schema: VerticalSchema, answers: Mapping[str, Any]) -> bool:
    return any(matches(cond, answers) for cond in schema.urgent_when)


def compute_scheduled_at(
    schema: VerticalSchema, answers: Mapping[str, Any], now: datetime
) -> datetime:
    """Resolve the scheduled timestamp. The first matching rule wins."""
    for rule in schema.schedule.rules:
        if rule.when is not None and not matches(rule.when, answers):
            continue
        if rule.date_field:
            chosen = answers.get(rule.date_field)
            if isinstance(chosen, date):
                return datetime.combine(chosen, time.min, tzinfo=timezone.utc)
            continue
        if rule.offset_hours is not None:
            return now + timedelta(hours=rule.offset_hours)
    return now + timedelta(hours=schema.schedule.default_offset_hours)


def time_preference(schema: VerticalSchema, answers: Mapping[str, Any]) -> str:
    for rule in schema.time_preference:
        if rule.when is not None and not matches(rule.when, answers):
            continue
        if rule.text is not None:
            return rule.text
        if rule.field is None:
            continue
        value = answers.get(rule.field)
        if not value:
            continue
        if rule.use_label:
            return option_text(schema.field(rule.field), value, answers)
        return str(value)
    return ""


def build_title(schema: VerticalSchema, answers: Mapping[str, Any], max_length: int = 80) -> str:
    text = display_value(schema.field(schema.title.field), answers) or NOT_ANSWERED
    return (schema.title.prefix + text)[:max_length]


def service_type(schema: VerticalSchema, answers: Mapping[str, Any]) -> str:
    """Raw enum value of the subtype field; the first one for multi-selects."""
    if schema.subtype_field is None:
        return "general"
    value = answers.get(schema.subtype_field)
    if schema.field(schema.subtype_field).field_type == FieldType.MULTI_SELECT:
        value = value[0] if value else None
    return value or "general"


def build_job_record(
    schema: VerticalSchema,
    answers: Mapping[str, Any],
    *,
    user_id: str,
    now: datetime | None = None,
    base_rate: int = 1,
    title_max_length: int = 80,
) -> JobRecord:
    """Assemble the record for the job store.

    Only photos that finished uploading are included; pending and failed
    entries are dropped silently.
    """
    now = now or datetime.now(timezone.utc)
    description = synthesize(answers, schema)

    photos: list[str] = []
    if schema.photo_field is not None:
        photos = [p.url for p in answers.get(schema.photo_field, ()) if p.uploaded]

    location = ""
    if schema.location_field is not None:
        location = (answers.get(schema.location_field) or "").strip()

    return JobRecord(
        client_id=user_id,
        provider_id=None,
        title=build_title(schema, answers, title_max_length),
        description=description,
        category=schema.category,
        service_type=service_type(schema, answers),
        problem=description,
        location=location,
        photos=photos,
        rate=base_rate,
        status="active",
        scheduled_at=compute_scheduled_at(schema, answers, now).isoformat(),
        time_preference=time_preference(schema, answers),
        urgent=is_urgent(schema, answers),
        photo_count=len(photos),
    )
