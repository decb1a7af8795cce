"""In-memory registry of wizard sessions served over HTTP."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from chamby.auth.session import AuthSession
from chamby.booking.continuation import ContinuationStore
from chamby.booking.drafts import DraftSlot, DraftStore, FileDraftSlot, InMemoryDraftSlot
from chamby.booking.engine import BookingWizard
from chamby.booking.models import VerticalSchema
from chamby.core.config import Settings
from chamby.stores.blob import BlobStore
from chamby.stores.jobs import JobStore

logger = logging.getLogger(__name__)

_DEVICE_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WizardSession:
    id: str
    device_id: str
    wizard: BookingWizard
    auth: AuthSession
    created_at: datetime = field(default_factory=_utcnow)
    last_seen: datetime = field(default_factory=_utcnow)


class WizardSessionStore:
    """Creates and tracks wizard sessions.

    Drafts and continuation tokens are scoped to a device id, so a second
    session opened from the same device picks up where the first left off.
    Sessions idle for longer than ``session_ttl_minutes`` are swept whenever
    a new one is opened, along with the slots of devices left without one.
    """

    def __init__(
        self,
        verticals: dict[str, VerticalSchema],
        blob_store: BlobStore,
        job_store: JobStore,
        settings: Settings,
    ) -> None:
        self._verticals = verticals
        self._blob = blob_store
        self._jobs = job_store
        self._settings = settings
        self._ttl = timedelta(minutes=settings.booking.session_ttl_minutes)
        self._sessions: dict[str, WizardSession] = {}
        self._slots: dict[str, DraftSlot] = {}

    @property
    def verticals(self) -> dict[str, VerticalSchema]:
        return self._verticals

    def slot_for(self, device_id: str) -> DraftSlot:
        """Return the draft slot shared by every session of a device.

        Raises:
            ValueError: If the device id is not a plain token.
        """
        if not _DEVICE_ID.match(device_id):
            raise ValueError(
                "device_id must be 1-64 letters, digits, dashes or underscores"
            )
        slot = self._slots.get(device_id)
        if slot is None:
            drafts_dir = self._settings.booking.drafts_dir
            if drafts_dir:
                slot = FileDraftSlot(Path(drafts_dir) / device_id)
            else:
                slot = InMemoryDraftSlot()
            self._slots[device_id] = slot
        return slot

    def create(
        self,
        vertical_id: str,
        auth: AuthSession,
        device_id: str | None = None,
        now: datetime | None = None,
    ) -> WizardSession:
        """Open and mount a wizard for a vertical.

        Raises:
            KeyError: If the vertical is unknown.
            ValueError: If the device id is malformed.
        """
        schema = self._verticals.get(vertical_id)
        if schema is None:
            raise KeyError(f"Unknown vertical {vertical_id!r}")

        now = now or _utcnow()
        self.sweep(now)
        device_id = device_id or uuid.uuid4().hex
        slot = self.slot_for(device_id)
        booking = self._settings.booking
        wizard = BookingWizard(
            schema,
            drafts=DraftStore(slot, booking.draft_key_prefix, booking.draft_max_age_hours),
            blob_store=self._blob,
            job_store=self._jobs,
            auth=auth,
            continuations=ContinuationStore(slot),
            settings=self._settings,
            auto_confirm=False,
        )
        wizard.mount()

        session = WizardSession(
            id=uuid.uuid4().hex,
            device_id=device_id,
            wizard=wizard,
            auth=auth,
            created_at=now,
            last_seen=now,
        )
        self._sessions[session.id] = session
        logger.info("Opened %s session %s for device %s", vertical_id, session.id, device_id)
        return session

    def get(self, session_id: str, now: datetime | None = None) -> WizardSession | None:
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen = now or _utcnow()
        return session

    def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.wizard.abandon()
        return True

    def sweep(self, now: datetime | None = None) -> int:
        """Close sessions idle past the TTL. Returns how many were closed."""
        cutoff = (now or _utcnow()) - self._ttl
        stale = [s.id for s in self._sessions.values() if s.last_seen < cutoff]
        for session_id in stale:
            device_id = self._sessions[session_id].device_id
            self.close(session_id)
            self._release_slot(device_id)
        if stale:
            logger.info("Swept %d idle wizard sessions", len(stale))
        return len(stale)

    def _release_slot(self, device_id: str) -> None:
        if not any(s.device_id == device_id for s in self._sessions.values()):
            self._slots.pop(device_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
