"""Evaluation of schema conditions against an answer set."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from chamby.booking.models import Condition


def is_filled(value: Any, min_length: int = 1) -> bool:
    """Return True if a value counts as answered."""
    if value is None:
        return False
    if isinstance(value, str):
        return len(value.strip()) >= min_length
    if isinstance(value, (tuple, list, set, frozenset)):
        return len(value) > 0
    return True


def matches(condition: Condition, answers: Mapping[str, Any]) -> bool:
    value = answers.get(condition.field)
    if condition.equals is not None:
        return value == condition.equals
    if condition.one_of:
        return value in condition.one_of
    if condition.contains is not None:
        return condition.contains in (value or ())
    if condition.excludes is not None:
        return condition.excludes not in (value or ())
    return is_filled(value)
