"""Step navigation over a vertical schema.

Pure functions: given a schema, a position and an answer set they compute
where the wizard may go. Invalid moves return the position unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from chamby.booking.conditions import is_filled, matches
from chamby.booking.models import StepDefinition, VerticalSchema


class WizardPosition(BaseModel):
    """Current step, or the summary view reached from the last step."""

    model_config = ConfigDict(frozen=True)

    step: int = 1
    summary: bool = False


def step_complete(step: StepDefinition, answers: Mapping[str, Any]) -> bool:
    """Evaluate a step's completion predicate."""
    if step.optional:
        return True
    for req in step.requires:
        if req.when is not None and not matches(req.when, answers):
            continue
        if not is_filled(answers.get(req.field), req.min_length):
            return False
    return True


def can_advance(schema: VerticalSchema, step: int, answers: Mapping[str, Any]) -> bool:
    return step_complete(schema.step(step), answers)


def first_incomplete_step(schema: VerticalSchema, answers: Mapping[str, Any]) -> int | None:
    for step in schema.steps:
        if not step_complete(step, answers):
            return step.index
    return None


def all_steps_complete(schema: VerticalSchema, answers: Mapping[str, Any]) -> bool:
    return first_incomplete_step(schema, answers) is None


def advance(
    schema: VerticalSchema, position: WizardPosition, answers: Mapping[str, Any]
) -> WizardPosition:
    """Move forward one step, or into the summary from the last step.

    The caller applies the authentication gate before showing the summary.
    """
    if position.summary or not can_advance(schema, position.step, answers):
        return position
    if position.step < schema.total_steps:
        return WizardPosition(step=position.step + 1)
    if all_steps_complete(schema, answers):
        return WizardPosition(step=position.step, summary=True)
    return position


def retreat(position: WizardPosition) -> WizardPosition:
    """Move back one step. Never validates the step being left."""
    if position.summary:
        return WizardPosition(step=position.step)
    if position.step <= 1:
        return position
    return WizardPosition(step=position.step - 1)
