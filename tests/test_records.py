"""Tests for job record construction."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from chamby.booking.form_state import FormStateStore
from chamby.booking.models import PhotoEntry
from chamby.booking.records import (
    build_job_record,
    build_title,
    compute_scheduled_at,
    is_urgent,
    time_preference,
)

from tests.conftest import MARIA, NOW, PLUMBING_EMERGENCY


def _answers(schema, **values):
    store = FormStateStore(schema)
    for key, value in values.items():
        store.set_field(key, value)
    return store.answers


class TestPlumbingScenario:
    def test_emergency_record(self, plumbing):
        record = build_job_record(
            plumbing, _answers(plumbing, **PLUMBING_EMERGENCY), user_id=MARIA.id, now=NOW
        )
        assert record.urgent is True
        assert record.scheduled_at == (NOW + timedelta(hours=2)).isoformat()
        assert record.title.startswith("Fontanería: Emergencia")
        assert "🚨" in record.description
        assert "Alta (inunda / no se puede usar)" in record.description
        assert record.problem == record.description
        assert record.category == "Fontanería"
        assert record.service_type == "emergencia"
        assert record.client_id == MARIA.id
        assert record.provider_id is None
        assert record.status == "active"
        assert record.rate == 1
        assert record.time_preference == "asap"
        assert record.location == ""
        assert record.photos == []

    def test_high_severity_alone_is_urgent(self, plumbing):
        answers = _answers(plumbing, **{**PLUMBING_EMERGENCY, "problem": "fuga"})
        assert is_urgent(plumbing, answers)
        assert compute_scheduled_at(plumbing, answers, NOW) == NOW + timedelta(hours=24)

    def test_routine_request(self, plumbing):
        answers = _answers(
            plumbing, **{**PLUMBING_EMERGENCY, "problem": "olor", "severity": "low"}
        )
        assert not is_urgent(plumbing, answers)


class TestScheduling:
    @pytest.mark.parametrize("vertical_id", ["cleaning", "gardening", "auto_wash"])
    def test_default_offset(self, verticals, vertical_id):
        schema = verticals[vertical_id]
        assert compute_scheduled_at(schema, schema.defaults(), NOW) == NOW + timedelta(hours=24)
        assert not is_urgent(schema, schema.defaults())

    def test_electrical_risk_is_urgent_without_emergency(self, verticals):
        electrical = verticals["electrical"]
        answers = _answers(electrical, service="apagon", immediateRisk="yes")
        assert is_urgent(electrical, answers)
        assert compute_scheduled_at(electrical, answers, NOW) == NOW + timedelta(hours=24)

    @pytest.mark.parametrize("mode", ["asap", "today"])
    def test_handyman_now(self, verticals, mode):
        handyman = verticals["handyman"]
        answers = _answers(handyman, scheduleMode=mode)
        assert compute_scheduled_at(handyman, answers, NOW) == NOW

    def test_handyman_explicit_date(self, verticals):
        handyman = verticals["handyman"]
        answers = _answers(handyman, scheduleMode="date", scheduledDate="2026-03-10")
        assert compute_scheduled_at(handyman, answers, NOW) == datetime(
            2026, 3, 10, tzinfo=timezone.utc
        )


class TestTimePreference:
    def test_handyman_window_label(self, verticals):
        handyman = verticals["handyman"]
        answers = _answers(handyman, scheduleMode="asap", timeWindow="morning")
        assert time_preference(handyman, answers) == "Mañana (8–12)"

    def test_handyman_asap_fallback(self, verticals):
        handyman = verticals["handyman"]
        assert time_preference(handyman, _answers(handyman, scheduleMode="asap")) == (
            "Lo antes posible"
        )
        assert time_preference(handyman, _answers(handyman, scheduleMode="today")) == ""

    def test_cleaning_has_none(self, verticals):
        cleaning = verticals["cleaning"]
        assert time_preference(cleaning, _answers(cleaning, frequency="weekly")) == ""


class TestTitleAndFields:
    def test_title_truncated(self, verticals):
        handyman = verticals["handyman"]
        answers = _answers(handyman, description="Instalar " + "repisas " * 30)
        title = build_title(handyman, answers, max_length=80)
        assert len(title) == 80
        assert title.startswith("Instalar repisas")

    def test_handyman_location_and_subtype(self, verticals):
        handyman = verticals["handyman"]
        answers = _answers(
            handyman,
            description="Cambiar la chapa de la puerta principal",
            workType="reparacion",
            serviceAddress="  Av. Chapultepec 123, Guadalajara  ",
        )
        record = build_job_record(handyman, answers, user_id=MARIA.id, now=NOW)
        assert record.location == "Av. Chapultepec 123, Guadalajara"
        assert record.service_type == "reparacion"
        assert record.category == "Handyman"
        assert record.title == "Cambiar la chapa de la puerta principal"

    def test_gardening_subtype_is_first_service(self, verticals):
        gardening = verticals["gardening"]
        answers = _answers(gardening, services=["poda_arboles", "maleza"])
        record = build_job_record(gardening, answers, user_id=MARIA.id, now=NOW)
        assert record.service_type == "poda_arboles"
        assert record.title == "Jardinería: Poda de árboles, Retiro de maleza"

    def test_missing_subtype_is_general(self, verticals):
        cleaning = verticals["cleaning"]
        record = build_job_record(cleaning, cleaning.defaults(), user_id=MARIA.id, now=NOW)
        assert record.service_type == "general"
        assert record.title == "Limpieza: N/A"

    def test_only_uploaded_photos(self, plumbing):
        store = FormStateStore(plumbing)
        store.update_photos(
            lambda current: (
                PhotoEntry(url="https://cdn/1.jpg", uploaded=True),
                PhotoEntry(url="data:image/jpeg;base64,AA==", uploaded=False),
                PhotoEntry(url="https://cdn/2.jpg", uploaded=True),
            )
        )
        record = build_job_record(plumbing, store.answers, user_id=MARIA.id, now=NOW)
        assert record.photos == ["https://cdn/1.jpg", "https://cdn/2.jpg"]
        assert record.photo_count == 2
