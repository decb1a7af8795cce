"""Tests for step navigation and completion predicates."""

from __future__ import annotations

import pytest

from chamby.booking.form_state import FormStateStore
from chamby.booking.navigator import (
    WizardPosition,
    advance,
    all_steps_complete,
    can_advance,
    first_incomplete_step,
    retreat,
)

from tests.conftest import PLUMBING_EMERGENCY


def _answers(schema, **values):
    store = FormStateStore(schema)
    for key, value in values.items():
        store.set_field(key, value)
    return store.answers


class TestCompletionPredicates:
    def test_empty_required_step_blocks(self, plumbing):
        assert not can_advance(plumbing, 1, plumbing.defaults())

    def test_optional_steps_always_pass(self, plumbing):
        assert can_advance(plumbing, 6, plumbing.defaults())
        assert can_advance(plumbing, 9, plumbing.defaults())

    def test_other_needs_companion_text(self, plumbing):
        answers = _answers(plumbing, problem="otro")
        assert not can_advance(plumbing, 1, answers)
        answers = _answers(plumbing, problem="otro", otherProblem="  abc  ")
        assert not can_advance(plumbing, 1, answers)
        answers = _answers(plumbing, problem="otro", otherProblem="Se rompió la llave")
        assert can_advance(plumbing, 1, answers)

    def test_apartment_needs_affects_others(self, plumbing):
        assert can_advance(plumbing, 5, _answers(plumbing, buildingType="house"))
        assert not can_advance(plumbing, 5, _answers(plumbing, buildingType="apartment"))
        assert can_advance(
            plumbing, 5, _answers(plumbing, buildingType="apartment", affectsOthers="no")
        )

    def test_gardening_other_service(self, verticals):
        gardening = verticals["gardening"]
        assert not can_advance(gardening, 1, _answers(gardening, services=["otro"]))
        assert can_advance(
            gardening, 1, _answers(gardening, services=["otro"], otherService="Riego")
        )

    def test_handyman_description_length(self, verticals):
        handyman = verticals["handyman"]
        assert not can_advance(handyman, 1, _answers(handyman, description="Colgar tele"))
        assert can_advance(
            handyman, 1, _answers(handyman, description="Colgar una tele en la sala")
        )

    def test_handyman_explicit_date(self, verticals):
        handyman = verticals["handyman"]
        assert can_advance(handyman, 4, _answers(handyman, scheduleMode="asap"))
        assert not can_advance(handyman, 4, _answers(handyman, scheduleMode="date"))
        assert can_advance(
            handyman, 4, _answers(handyman, scheduleMode="date", scheduledDate="2026-04-01")
        )

    def test_first_incomplete_step(self, plumbing):
        answers = _answers(plumbing, problem="fuga", locations=["bano"])
        assert first_incomplete_step(plumbing, answers) == 3
        assert not all_steps_complete(plumbing, answers)
        assert all_steps_complete(plumbing, _answers(plumbing, **PLUMBING_EMERGENCY))


class TestAdvance:
    @pytest.mark.parametrize("step", range(1, 11))
    def test_incomplete_step_never_moves(self, plumbing, step):
        position = WizardPosition(step=step)
        if can_advance(plumbing, step, plumbing.defaults()):
            pytest.skip("optional step")
        assert advance(plumbing, position, plumbing.defaults()) == position

    @pytest.mark.parametrize("step", range(1, 10))
    def test_complete_step_moves_by_one(self, plumbing, step):
        answers = _answers(plumbing, **PLUMBING_EMERGENCY)
        assert advance(plumbing, WizardPosition(step=step), answers) == WizardPosition(
            step=step + 1
        )

    def test_last_step_enters_summary(self, plumbing):
        answers = _answers(plumbing, **PLUMBING_EMERGENCY)
        target = advance(plumbing, WizardPosition(step=10), answers)
        assert target == WizardPosition(step=10, summary=True)

    def test_last_step_with_earlier_gap_stays(self, plumbing):
        answers = _answers(plumbing, schedule="asap")
        position = WizardPosition(step=10)
        assert advance(plumbing, position, answers) == position

    def test_summary_is_terminal(self, plumbing):
        answers = _answers(plumbing, **PLUMBING_EMERGENCY)
        position = WizardPosition(step=10, summary=True)
        assert advance(plumbing, position, answers) is position


class TestRetreat:
    def test_summary_collapses_to_last_step(self):
        assert retreat(WizardPosition(step=10, summary=True)) == WizardPosition(step=10)

    def test_first_step_is_floor(self):
        assert retreat(WizardPosition(step=1)) == WizardPosition(step=1)

    @pytest.mark.parametrize("step", range(2, 11))
    def test_moves_back_one(self, step):
        assert retreat(WizardPosition(step=step)) == WizardPosition(step=step - 1)
