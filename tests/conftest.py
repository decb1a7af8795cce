"""Shared test fixtures and helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from chamby.auth.models import UserIdentity
from chamby.booking.schema import load_verticals
from chamby.core.errors import BlobStoreError
from chamby.stores.blob import InMemoryBlobStore

NOW = datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)

MARIA = UserIdentity(
    id="0f3c6a52-8d1e-4c7a-9b0e-2a51f2d4c001",
    display_name="María López",
    email="maria.lopez@example.com",
)

# Every required plumbing step answered, emergency path.
PLUMBING_EMERGENCY: dict[str, Any] = {
    "problem": "emergencia",
    "locations": ["bano"],
    "severity": "high",
    "waterShut": "no",
    "buildingType": "house",
    "materialsProvider": "client",
    "hasParts": "yes",
    "installationAge": "new",
    "schedule": "asap",
}


@pytest.fixture(scope="session")
def verticals():
    return load_verticals()


@pytest.fixture
def plumbing(verticals):
    return verticals["plumbing"]


def fixed_clock() -> datetime:
    return NOW


class FlakyBlobStore(InMemoryBlobStore):
    """In-memory blob store that rejects payloads containing ``fail``."""

    async def store(self, path: str, content: bytes, content_type: str) -> None:
        if b"fail" in content:
            raise BlobStoreError("Payload too large", status_code=413)
        await super().store(path, content, content_type)


def fill(wizard, answers: dict[str, Any]) -> None:
    for key, value in answers.items():
        wizard.set_field(key, value)


def advance_to_end(wizard) -> None:
    for _ in range(wizard.schema.total_steps):
        wizard.next()
