"""Submission controller: validate, authenticate, create the job record."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from chamby.auth.session import AuthService
from chamby.booking.drafts import DraftStore
from chamby.booking.models import VerticalSchema
from chamby.booking.navigator import first_incomplete_step
from chamby.booking.records import build_job_record
from chamby.core.config import BookingConfig
from chamby.core.errors import StoreError
from chamby.core.types import SubmissionState
from chamby.notifications.center import NotificationCenter
from chamby.stores.jobs import JobStore

logger = logging.getLogger(__name__)

SUBMIT_ERROR_TITLE = "Error al enviar solicitud"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionController:
    """Runs one submission attempt at a time.

    A failed attempt returns the controller to ``IDLE`` with the error kept
    in ``last_error``; the caller decides whether to retry.
    """

    def __init__(
        self,
        schema: VerticalSchema,
        job_store: JobStore,
        auth: AuthService,
        drafts: DraftStore,
        notifier: NotificationCenter,
        settings: BookingConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_auth_required: Callable[[], None] | None = None,
    ) -> None:
        self._schema = schema
        self._jobs = job_store
        self._auth = auth
        self._drafts = drafts
        self._notifier = notifier
        self._settings = settings or BookingConfig()
        self._clock = clock
        self._on_auth_required = on_auth_required
        self._state = SubmissionState.IDLE
        self._created_id: str | None = None
        self._last_error: str | None = None

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def is_submitting(self) -> bool:
        return self._state == SubmissionState.SUBMITTING

    @property
    def created_id(self) -> str | None:
        return self._created_id

    @property
    def last_error(self) -> str | None:
        return self._last_error

    async def submit(self, answers: Mapping[str, Any]) -> str | None:
        """Attempt to create the job record.

        Returns the new job id, or None when the attempt did not complete
        (already in flight, incomplete answers, missing session, store error).
        """
        if self._state in (SubmissionState.SUBMITTING, SubmissionState.SUCCESS):
            logger.debug("Ignoring submit while %s", self._state)
            return self._created_id if self._state == SubmissionState.SUCCESS else None

        self._state = SubmissionState.VALIDATING
        incomplete = first_incomplete_step(self._schema, answers)
        if incomplete is not None:
            logger.warning(
                "Refusing to submit %s: step %d is incomplete", self._schema.id, incomplete
            )
            self._state = SubmissionState.IDLE
            return None

        user = self._auth.get_current_user()
        if user is None:
            self._state = SubmissionState.AUTHENTICATING
            logger.info("Submission of %s needs authentication", self._schema.id)
            if self._on_auth_required is not None:
                self._on_auth_required()
            return None

        self._state = SubmissionState.SUBMITTING
        self._last_error = None
        record = build_job_record(
            self._schema,
            answers,
            user_id=user.id,
            now=self._clock(),
            base_rate=self._settings.base_rate,
            title_max_length=self._settings.title_max_length,
        )
        try:
            job_id = await self._jobs.create(record)
        except StoreError as exc:
            logger.error("Job creation for %s failed: %s", self._schema.id, exc.detail)
            self._last_error = exc.detail
            self._notifier.error(SUBMIT_ERROR_TITLE, exc.detail)
            self._state = SubmissionState.IDLE
            return None

        self._drafts.clear(self._schema.wallet_key)
        self._created_id = job_id
        self._state = SubmissionState.SUCCESS
        logger.info("Created job %s (%s, urgent=%s)", job_id, record.category, record.urgent)
        return job_id

    def cancel_authentication(self) -> None:
        """Leave the authenticating state without submitting."""
        if self._state == SubmissionState.AUTHENTICATING:
            self._state = SubmissionState.IDLE
