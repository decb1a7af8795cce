"""Shared models for the booking wizard system."""

from __future__ import annotations

import base64
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from chamby.core.types import FieldType, LineStyle


class Condition(BaseModel):
    """A predicate over one answer.

    Exactly one of ``equals``, ``one_of``, ``contains`` or ``excludes`` is
    normally set. With none of them the condition holds when the field is
    answered at all.
    """

    field: str
    equals: str | None = None
    one_of: list[str] = Field(default_factory=list)
    contains: str | None = None
    excludes: str | None = None


class Requirement(BaseModel):
    """One clause of a step's completion predicate."""

    field: str
    min_length: int = 1
    when: Condition | None = None


class Companion(BaseModel):
    """Free-text field unlocked by a sentinel option value."""

    value: str
    field: str
    template: str = "{text}"
    fallback: str = "Otro"


class FieldDefinition(BaseModel):
    """Definition of a single answer field."""

    id: str
    label: str
    field_type: FieldType
    options: dict[str, str] = Field(default_factory=dict)
    companions: list[Companion] = Field(default_factory=list)
    max_length: int | None = None

    @property
    def default(self) -> Any:
        if self.field_type == FieldType.TEXT:
            return ""
        if self.field_type in (FieldType.MULTI_SELECT, FieldType.PHOTOS):
            return ()
        return None

    def companion_for(self, value: str) -> Companion | None:
        for companion in self.companions:
            if companion.value == value:
                return companion
        return None


class StepDefinition(BaseModel):
    """Definition of a single wizard step."""

    index: int
    title: str
    fields: list[str] = Field(default_factory=list)
    requires: list[Requirement] = Field(default_factory=list)
    optional: bool = False


class NarrativeLine(BaseModel):
    """One line of the synthesized job description."""

    field: str
    heading: str | None = None
    glyph: str = ""
    style: LineStyle = LineStyle.INLINE
    break_before: bool = False
    indent: str = ""
    required: bool = False
    when: Condition | None = None


class AnnotationRule(BaseModel):
    """Marker attached to a narrative line when a condition holds.

    ``suffix`` is appended to the target line; ``line`` is emitted as its
    own line right after the target, even when the target itself is empty.
    """

    target: str
    when: Condition
    suffix: str | None = None
    line: str | None = None

    @model_validator(mode="after")
    def _one_marker(self) -> AnnotationRule:
        if (self.suffix is None) == (self.line is None):
            raise ValueError("annotation needs exactly one of 'suffix' or 'line'")
        return self


class ScheduleRule(BaseModel):
    when: Condition | None = None
    offset_hours: float | None = None
    date_field: str | None = None


class SchedulePolicy(BaseModel):
    """How the scheduled timestamp is derived. First matching rule wins."""

    rules: list[ScheduleRule] = Field(default_factory=list)
    default_offset_hours: float = 24


class TimePreferenceRule(BaseModel):
    field: str | None = None
    use_label: bool = False
    when: Condition | None = None
    text: str | None = None


class TitleSpec(BaseModel):
    field: str
    prefix: str = ""


class VerticalSchema(BaseModel):
    """Full definition of one service vertical loaded from YAML."""

    id: str
    wallet_key: str
    category: str
    anchor_field: str
    title: TitleSpec
    subtype_field: str | None = None
    location_field: str | None = None
    fields: list[FieldDefinition] = Field(default_factory=list)
    steps: list[StepDefinition] = Field(default_factory=list)
    narrative: list[NarrativeLine] = Field(default_factory=list)
    annotations: list[AnnotationRule] = Field(default_factory=list)
    urgent_when: list[Condition] = Field(default_factory=list)
    schedule: SchedulePolicy = Field(default_factory=SchedulePolicy)
    time_preference: list[TimePreferenceRule] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> VerticalSchema:
        known = {f.id for f in self.fields}
        if len(known) != len(self.fields):
            raise ValueError(f"duplicate field ids in vertical {self.id!r}")

        indices = [s.index for s in self.steps]
        if indices != list(range(1, len(self.steps) + 1)):
            raise ValueError(
                f"step indices of {self.id!r} must be contiguous from 1, got {indices}"
            )

        referenced: list[str] = [self.anchor_field, self.title.field]
        referenced += [f for f in (self.subtype_field, self.location_field) if f]
        for step in self.steps:
            referenced += step.fields
            for req in step.requires:
                referenced.append(req.field)
                if req.when:
                    referenced.append(req.when.field)
        for line in self.narrative:
            referenced.append(line.field)
            if line.when:
                referenced.append(line.when.field)
        for rule in self.annotations:
            referenced += [rule.target, rule.when.field]
        referenced += [c.field for c in self.urgent_when]
        for field in self.fields:
            referenced += [c.field for c in field.companions]

        missing = sorted(set(referenced) - known)
        if missing:
            raise ValueError(f"vertical {self.id!r} references unknown fields: {missing}")

        photo_fields = [f for f in self.fields if f.field_type == FieldType.PHOTOS]
        if len(photo_fields) > 1:
            raise ValueError(f"vertical {self.id!r} declares more than one photos field")
        return self

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def return_route(self) -> str:
        return f"/book-job?category={self.category}"

    @property
    def photo_field(self) -> str | None:
        for field in self.fields:
            if field.field_type == FieldType.PHOTOS:
                return field.id
        return None

    def field(self, field_id: str) -> FieldDefinition:
        for field in self.fields:
            if field.id == field_id:
                return field
        raise KeyError(f"Unknown field {field_id!r} in vertical {self.id!r}")

    def step(self, index: int) -> StepDefinition:
        if not 1 <= index <= self.total_steps:
            raise KeyError(f"Step {index} out of range for vertical {self.id!r}")
        return self.steps[index - 1]

    def defaults(self) -> dict[str, Any]:
        return {f.id: f.default for f in self.fields}


# --- Runtime models ---


class PhotoFile(BaseModel):
    """A local binary selected by the user."""

    filename: str
    content: bytes
    content_type: str = "image/jpeg"

    @property
    def extension(self) -> str:
        _, dot, ext = self.filename.rpartition(".")
        return ext.lower() if dot and ext else "jpg"

    def preview_url(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


class PhotoEntry(BaseModel):
    """Upload lifecycle record for one selected photo."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    file: PhotoFile | None = None
    url: str
    uploaded: bool = False


class Draft(BaseModel):
    """Persisted snapshot of an in-progress wizard (photos excluded)."""

    answers: dict[str, Any] = Field(default_factory=dict)
    step: int = 1


class DraftEnvelope(BaseModel):
    data: Draft
    saved_at: AwareDatetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    url: str = ""


class ContinuationToken(BaseModel):
    """Saved wizard position used to resume after an auth interruption."""

    wallet_key: str
    answers: dict[str, Any] = Field(default_factory=dict)
    step: int = 1
    target_route: str
    resume_summary: bool = True
    created_at: AwareDatetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class JobRecord(BaseModel):
    """Row created in the job store on submission."""

    client_id: str
    provider_id: str | None = None
    title: str
    description: str
    category: str
    service_type: str
    problem: str
    location: str = ""
    photos: list[str] = Field(default_factory=list)
    rate: int = 1
    status: str = "active"
    scheduled_at: str
    time_preference: str = ""
    exact_time: str = ""
    budget: str = ""
    urgent: bool = False
    photo_count: int = 0
