"""Tests for the form state store."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from chamby.booking.form_state import FormStateStore, coerce_value, to_jsonable
from chamby.booking.models import PhotoEntry


class TestMutations:
    def setup_method(self):
        self.events = []

    def _store(self, schema):
        store = FormStateStore(schema)
        store.subscribe(self.events.append)
        return store

    def test_starts_at_defaults(self, plumbing):
        store = FormStateStore(plumbing)
        assert store.step == 1
        assert store.answers["problem"] is None
        assert store.snapshot.version == 0

    def test_set_field_publishes_new_snapshot(self, plumbing):
        store = self._store(plumbing)
        before = store.snapshot
        after = store.set_field("problem", "fuga")
        assert after is not before
        assert before.answers["problem"] is None
        assert after.answers["problem"] == "fuga"
        assert self.events == [after]

    def test_snapshots_are_read_only(self, plumbing):
        store = FormStateStore(plumbing)
        with pytest.raises(TypeError):
            store.answers["problem"] = "fuga"

    def test_toggle_adds_and_removes(self, plumbing):
        store = self._store(plumbing)
        store.toggle_in_set("locations", "bano")
        store.toggle_in_set("locations", "cocina")
        assert store.answers["locations"] == ("bano", "cocina")
        store.toggle_in_set("locations", "bano")
        assert store.answers["locations"] == ("cocina",)
        assert len(self.events) == 3

    def test_toggle_leaves_other_fields_alone(self, plumbing):
        store = FormStateStore(plumbing)
        store.set_field("problem", "fuga")
        store.toggle_in_set("locations", "patio")
        assert store.answers["problem"] == "fuga"

    def test_toggle_rejects_single_select(self, plumbing):
        store = FormStateStore(plumbing)
        with pytest.raises(ValueError, match="multi-select"):
            store.toggle_in_set("problem", "fuga")

    def test_unknown_option_rejected(self, plumbing):
        store = FormStateStore(plumbing)
        with pytest.raises(ValueError, match="not an option"):
            store.set_field("severity", "catastrophic")

    def test_unknown_field_raises_key_error(self, plumbing):
        store = FormStateStore(plumbing)
        with pytest.raises(KeyError):
            store.set_field("nope", "x")

    def test_set_step_range(self, plumbing):
        store = FormStateStore(plumbing)
        store.set_step(10)
        assert store.step == 10
        with pytest.raises(ValueError):
            store.set_step(11)
        with pytest.raises(ValueError):
            store.set_step(0)

    def test_unsubscribe(self, plumbing):
        store = FormStateStore(plumbing)
        unsubscribe = store.subscribe(self.events.append)
        unsubscribe()
        store.set_field("problem", "fuga")
        assert self.events == []

    def test_reset(self, plumbing):
        store = FormStateStore(plumbing)
        store.set_field("problem", "fuga")
        store.set_step(3)
        store.reset()
        assert store.step == 1
        assert store.answers["problem"] is None


class TestRestore:
    def test_merges_over_defaults(self, plumbing):
        store = FormStateStore(plumbing)
        store.restore({"problem": "fuga", "locations": ["bano"]}, 3)
        assert store.step == 3
        assert store.answers["problem"] == "fuga"
        assert store.answers["locations"] == ("bano",)
        assert store.answers["severity"] is None

    def test_drops_unknown_and_stale_values(self, plumbing):
        store = FormStateStore(plumbing)
        store.restore({"problem": "retired_option", "legacyField": 1}, 2)
        assert store.answers["problem"] is None
        assert "legacyField" not in store.answers

    def test_photos_always_reset(self, plumbing):
        store = FormStateStore(plumbing)
        store.restore({"photos": [{"url": "https://x/1.jpg", "uploaded": True}]}, 9)
        assert store.answers["photos"] == ()

    def test_step_is_clamped(self, plumbing):
        store = FormStateStore(plumbing)
        store.restore({}, 42)
        assert store.step == plumbing.total_steps


class TestCoercion:
    def test_text_truncated(self, plumbing):
        field = plumbing.field("otherProblem")
        assert coerce_value(field, "x" * 300, text_max_length=200) == "x" * 200

    def test_field_max_length_wins(self, plumbing):
        field = plumbing.field("additionalNotes")
        assert len(coerce_value(field, "y" * 600)) == 500

    def test_multi_select_deduplicates(self, plumbing):
        field = plumbing.field("locations")
        assert coerce_value(field, ["bano", "bano", "patio"]) == ("bano", "patio")

    def test_multi_select_rejects_bare_string(self, plumbing):
        with pytest.raises(ValueError):
            coerce_value(plumbing.field("locations"), "bano")

    def test_dates(self, verticals):
        field = verticals["handyman"].field("scheduledDate")
        assert coerce_value(field, "2026-04-01") == date(2026, 4, 1)
        assert coerce_value(field, "2026-04-01T10:00:00Z") == date(2026, 4, 1)
        assert coerce_value(field, datetime(2026, 4, 1, 9)) == date(2026, 4, 1)
        assert coerce_value(field, "") is None


class TestJsonable:
    def test_photos_optional(self, plumbing):
        store = FormStateStore(plumbing)
        store.update_photos(lambda current: current + (PhotoEntry(url="memory://a"),))
        with_photos = to_jsonable(plumbing, store.answers)
        without = to_jsonable(plumbing, store.answers, include_photos=False)
        assert with_photos["photos"][0]["url"] == "memory://a"
        assert "photos" not in without
        assert without["locations"] == []


class TestPhotoField:
    def test_set_field_rejects_photos(self, plumbing):
        store = FormStateStore(plumbing)
        with pytest.raises(ValueError, match="photo uploads"):
            store.set_field("photos", [{"url": "https://cdn.example/x.png", "uploaded": True}])
        assert store.answers["photos"] == ()
        assert store.snapshot.version == 0

    def test_coerce_rejects_photos(self, plumbing):
        with pytest.raises(ValueError):
            coerce_value(plumbing.field("photos"), None)
