"""Draft persistence for in-progress wizards.

Drafts live in a per-device key/value slot. Failures here never reach the
user: every slot error is logged and absorbed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from chamby.booking.form_state import to_jsonable
from chamby.booking.models import Draft, DraftEnvelope, VerticalSchema

logger = logging.getLogger(__name__)


@runtime_checkable
class DraftSlot(Protocol):
    """Protocol for a durable string store scoped to one device."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryDraftSlot:
    """In-memory dict slot. Survives nothing but the process."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileDraftSlot:
    """Slot backed by one JSON file per key in a directory."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    def _path(self, key: str) -> Path:
        return self._dir / f"{_UNSAFE_CHARS.sub('_', key)}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        tmp = self._path(key).with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(self._path(key))

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def make_draft(schema: VerticalSchema, answers: Mapping[str, Any], step: int) -> Draft:
    """Snapshot an answer set for persistence, dropping photos."""
    return Draft(answers=to_jsonable(schema, answers, include_photos=False), step=step)


class DraftStore:
    """Save, load and clear wizard drafts keyed by wallet key."""

    def __init__(
        self,
        slot: DraftSlot,
        key_prefix: str = "chamby_form_",
        max_age_hours: float = 24,
    ) -> None:
        self._slot = slot
        self._prefix = key_prefix
        self._max_age = timedelta(hours=max_age_hours)

    def storage_key(self, wallet_key: str) -> str:
        return f"{self._prefix}{wallet_key}"

    def save(self, wallet_key: str, draft: Draft, url: str = "") -> bool:
        envelope = DraftEnvelope(data=draft, url=url)
        try:
            self._slot.set(self.storage_key(wallet_key), envelope.model_dump_json())
        except Exception:
            logger.exception("Error saving draft %s", wallet_key)
            return False
        logger.debug("Draft saved: %s (step %d)", wallet_key, draft.step)
        return True

    def load(self, wallet_key: str) -> Draft | None:
        key = self.storage_key(wallet_key)
        try:
            raw = self._slot.get(key)
        except Exception:
            logger.exception("Error reading draft %s", wallet_key)
            return None
        if raw is None:
            return None

        try:
            envelope = DraftEnvelope.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable draft %s", wallet_key)
            self.clear(wallet_key)
            return None

        if datetime.now(timezone.utc) - envelope.saved_at > self._max_age:
            logger.info("Draft %s expired, clearing", wallet_key)
            self.clear(wallet_key)
            return None

        logger.debug("Draft loaded: %s", wallet_key)
        return envelope.data

    def clear(self, wallet_key: str) -> None:
        try:
            self._slot.delete(self.storage_key(wallet_key))
        except Exception:
            logger.exception("Error clearing draft %s", wallet_key)
