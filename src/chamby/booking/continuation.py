"""One-shot continuation tokens for resuming a wizard after sign-in."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from chamby.booking.drafts import DraftSlot
from chamby.booking.models import ContinuationToken

logger = logging.getLogger(__name__)

_TOKEN_KEY = "chamby_auth_continuation"


class ContinuationStore:
    """Stores at most one pending continuation per device slot.

    A token is written once before the wizard suspends for authentication
    and consumed exactly once when it resumes.
    """

    def __init__(self, slot: DraftSlot) -> None:
        self._slot = slot

    def put(self, token: ContinuationToken) -> None:
        try:
            self._slot.set(_TOKEN_KEY, token.model_dump_json())
        except Exception:
            logger.exception("Error saving continuation for %s", token.wallet_key)

    def peek(self) -> ContinuationToken | None:
        try:
            raw = self._slot.get(_TOKEN_KEY)
        except Exception:
            logger.exception("Error reading continuation")
            return None
        if raw is None:
            return None
        try:
            return ContinuationToken.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable continuation token")
            self.discard()
            return None

    def consume(self, wallet_key: str) -> ContinuationToken | None:
        """Return and clear the pending token if it belongs to ``wallet_key``."""
        token = self.peek()
        if token is None or token.wallet_key != wallet_key:
            return None
        self.discard()
        return token

    def discard(self) -> None:
        try:
            self._slot.delete(_TOKEN_KEY)
        except Exception:
            logger.exception("Error clearing continuation")
