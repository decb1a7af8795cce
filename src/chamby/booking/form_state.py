"""Form state store: the answer set and current step of one wizard.

Every mutation publishes a brand-new ``FormSnapshot``; earlier snapshots
are never modified, so listeners can compare snapshots by identity.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from types import MappingProxyType
from typing import Any

from chamby.booking.models import FieldDefinition, PhotoEntry, VerticalSchema
from chamby.core.types import FieldType

logger = logging.getLogger(__name__)

Listener = Callable[["FormSnapshot"], None]


@dataclass(frozen=True)
class FormSnapshot:
    answers: Mapping[str, Any]
    step: int
    version: int


def coerce_value(field: FieldDefinition, value: Any, text_max_length: int = 200) -> Any:
    """Normalize a raw value into the canonical shape for ``field``.

    Raises:
        ValueError: If the value is not valid for the field.
    """
    kind = field.field_type

    if kind == FieldType.SINGLE_SELECT:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError(f"Field {field.id!r} expects a single option, got {value!r}")
        if field.options and value not in field.options:
            raise ValueError(f"{value!r} is not an option of field {field.id!r}")
        return value

    if kind == FieldType.MULTI_SELECT:
        if value is None:
            return ()
        if isinstance(value, str):
            raise ValueError(f"Field {field.id!r} expects a list of options")
        seen: list[str] = []
        for item in value:
            if field.options and item not in field.options:
                raise ValueError(f"{item!r} is not an option of field {field.id!r}")
            if item not in seen:
                seen.append(item)
        return tuple(seen)

    if kind == FieldType.TEXT:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError(f"Field {field.id!r} expects text")
        limit = field.max_length or text_max_length
        return value[:limit]

    if kind == FieldType.DATE:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            return date.fromisoformat(value[:10])
        raise ValueError(f"Field {field.id!r} expects a date")

    raise ValueError(f"Field {field.id!r} only changes through photo uploads")


def to_jsonable(
    schema: VerticalSchema, answers: Mapping[str, Any], include_photos: bool = True
) -> dict[str, Any]:
    """Render an answer set as plain JSON-compatible values."""
    out: dict[str, Any] = {}
    for field in schema.fields:
        value = answers.get(field.id, field.default)
        if field.field_type == FieldType.PHOTOS:
            if include_photos:
                out[field.id] = [
                    {"id": p.id, "url": p.url, "uploaded": p.uploaded} for p in value
                ]
            continue
        if field.field_type == FieldType.MULTI_SELECT:
            out[field.id] = list(value)
        elif field.field_type == FieldType.DATE:
            out[field.id] = value.isoformat() if value else None
        else:
            out[field.id] = value
    return out


class FormStateStore:
    """Holds the answer set and current step index for one wizard."""

    def __init__(self, schema: VerticalSchema, text_max_length: int = 200) -> None:
        self._schema = schema
        self._text_max_length = text_max_length
        self._listeners: list[Listener] = []
        self._snapshot = FormSnapshot(
            answers=MappingProxyType(schema.defaults()), step=1, version=0
        )

    @property
    def schema(self) -> VerticalSchema:
        return self._schema

    @property
    def snapshot(self) -> FormSnapshot:
        return self._snapshot

    @property
    def answers(self) -> Mapping[str, Any]:
        return self._snapshot.answers

    @property
    def step(self) -> int:
        return self._snapshot.step

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with every new snapshot."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- Mutations --

    def set_field(self, key: str, value: Any) -> FormSnapshot:
        field = self._schema.field(key)
        coerced = coerce_value(field, value, self._text_max_length)
        return self._publish({**self.answers, key: coerced}, self.step)

    def toggle_in_set(self, key: str, value: str) -> FormSnapshot:
        field = self._schema.field(key)
        if field.field_type != FieldType.MULTI_SELECT:
            raise ValueError(f"Field {key!r} is not a multi-select")
        if field.options and value not in field.options:
            raise ValueError(f"{value!r} is not an option of field {key!r}")
        current: tuple[str, ...] = self.answers[key]
        if value in current:
            updated = tuple(v for v in current if v != value)
        else:
            updated = current + (value,)
        return self._publish({**self.answers, key: updated}, self.step)

    def set_step(self, step: int) -> FormSnapshot:
        if not 1 <= step <= self._schema.total_steps:
            raise ValueError(
                f"Step {step} out of range 1..{self._schema.total_steps}"
            )
        return self._publish(dict(self.answers), step)

    def update_photos(
        self, fn: Callable[[tuple[PhotoEntry, ...]], Iterable[PhotoEntry]]
    ) -> FormSnapshot | None:
        """Replace the photo list with ``fn(current)`` in one mutation."""
        key = self._schema.photo_field
        if key is None:
            return None
        updated = tuple(fn(self.answers[key]))
        return self._publish({**self.answers, key: updated}, self.step)

    def restore(self, answers: Mapping[str, Any], step: int) -> FormSnapshot:
        """Replace the answer set wholesale, merged over schema defaults.

        Unknown keys are dropped, values that no longer fit the schema fall
        back to their default, and photos always start empty.
        """
        merged = self._schema.defaults()
        for field in self._schema.fields:
            if field.id not in answers or field.field_type == FieldType.PHOTOS:
                continue
            try:
                merged[field.id] = coerce_value(
                    field, answers[field.id], self._text_max_length
                )
            except (TypeError, ValueError):
                logger.warning(
                    "Discarding stale value for %s.%s", self._schema.id, field.id
                )
        step = min(max(int(step or 1), 1), self._schema.total_steps)
        return self._publish(merged, step)

    def reset(self) -> FormSnapshot:
        return self._publish(self._schema.defaults(), 1)

    def _publish(self, answers: dict[str, Any], step: int) -> FormSnapshot:
        self._snapshot = FormSnapshot(
            answers=MappingProxyType(answers),
            step=step,
            version=self._snapshot.version + 1,
        )
        for listener in list(self._listeners):
            listener(self._snapshot)
        return self._snapshot
