"""Core type definitions shared across all Chamby modules."""

from __future__ import annotations

from enum import StrEnum


class FieldType(StrEnum):
    """Kinds of answer a wizard field can hold."""

    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    TEXT = "text"
    DATE = "date"
    PHOTOS = "photos"


class LineStyle(StrEnum):
    """How a field is rendered in the narrative description."""

    INLINE = "inline"
    BULLETS = "bullets"


class SubmissionState(StrEnum):
    """Submission controller states."""

    IDLE = "idle"
    VALIDATING = "validating"
    AUTHENTICATING = "authenticating"
    SUBMITTING = "submitting"
    SUCCESS = "success"


class PostSubmitPhase(StrEnum):
    """Wizard phase after the job record has been created."""

    NONE = "none"
    AWAITING_VISIT_FEE = "awaiting_visit_fee"
    SUCCESS = "success"


class NotificationVariant(StrEnum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"
