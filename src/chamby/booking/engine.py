"""Booking wizard engine.

Composes the form store, navigator, draft persistence, photo uploads,
submission and the confirmation countdown into one wizard instance per
browsing session and vertical.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from chamby.auth.session import AuthService
from chamby.booking.conditions import is_filled
from chamby.booking.continuation import ContinuationStore
from chamby.booking.countdown import ConfirmCountdown
from chamby.booking.drafts import DraftStore, make_draft
from chamby.booking.form_state import FormSnapshot, FormStateStore, to_jsonable
from chamby.booking.models import ContinuationToken, PhotoEntry, PhotoFile, VerticalSchema
from chamby.booking.narrative import summary_rows, synthesize
from chamby.booking.navigator import (
    WizardPosition,
    advance,
    all_steps_complete,
    can_advance,
    retreat,
)
from chamby.booking.photos import PhotoUploadManager
from chamby.booking.submission import SubmissionController
from chamby.core.config import Settings
from chamby.core.types import PostSubmitPhase, SubmissionState
from chamby.notifications.center import NotificationCenter
from chamby.stores.blob import BlobStore
from chamby.stores.jobs import JobStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingWizard:
    """One wizard instance for one vertical.

    Call :meth:`mount` once before use. With ``auto_confirm`` the summary
    view starts a countdown that submits on its own unless the user backs
    out first; without it the caller must invoke :meth:`confirm`.
    """

    def __init__(
        self,
        schema: VerticalSchema,
        *,
        drafts: DraftStore,
        blob_store: BlobStore,
        job_store: JobStore,
        auth: AuthService,
        notifier: NotificationCenter | None = None,
        continuations: ContinuationStore | None = None,
        settings: Settings | None = None,
        auto_confirm: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        settings = settings or Settings()
        self._schema = schema
        self._drafts = drafts
        self._auth = auth
        self._notifier = notifier or NotificationCenter()
        self._continuations = continuations
        self._auto_confirm = auto_confirm

        self._form = FormStateStore(schema, settings.booking.text_max_length)
        self._photos = PhotoUploadManager(
            self._form,
            blob_store,
            auth,
            self._notifier,
            temp_prefix=settings.blob.temp_prefix,
            url_ttl_seconds=settings.blob.signed_url_ttl_seconds,
        )
        self._submission = SubmissionController(
            schema,
            job_store,
            auth,
            drafts,
            self._notifier,
            settings=settings.booking,
            clock=clock,
            on_auth_required=self._suspend_for_auth,
        )
        self._countdown = ConfirmCountdown(settings.booking.countdown_seconds)

        self._summary = False
        self._auth_required = False
        self._phase = PostSubmitPhase.NONE
        self._visit_fee_authorized: bool | None = None
        self._unsubscribe: Callable[[], None] | None = None

    # -- Lifecycle --

    def mount(self) -> None:
        """Restore state from a continuation token or a draft, then start autosaving."""
        if self._unsubscribe is not None:
            return
        token = None
        if self._continuations is not None and self._auth.get_current_user() is not None:
            token = self._continuations.consume(self._schema.wallet_key)

        if token is not None:
            self._form.restore(token.answers, token.step)
            logger.info("Resumed %s after sign-in at step %d", self._schema.id, token.step)
            if token.resume_summary and all_steps_complete(self._schema, self._form.answers):
                self._enter_summary()
        else:
            draft = self._drafts.load(self._schema.wallet_key)
            if draft is not None and is_filled(draft.answers.get(self._schema.anchor_field)):
                self._form.restore(draft.answers, draft.step)
                logger.info("Restored draft for %s at step %d", self._schema.id, draft.step)

        self._unsubscribe = self._form.subscribe(self._autosave)

    def abandon(self) -> None:
        """Stop autosaving and any pending countdown. The draft is kept."""
        self._countdown.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # -- State --

    @property
    def schema(self) -> VerticalSchema:
        return self._schema

    @property
    def notifier(self) -> NotificationCenter:
        return self._notifier

    @property
    def countdown(self) -> ConfirmCountdown:
        return self._countdown

    @property
    def snapshot(self) -> FormSnapshot:
        return self._form.snapshot

    @property
    def answers(self) -> Mapping[str, Any]:
        return self._form.answers

    @property
    def position(self) -> WizardPosition:
        return WizardPosition(step=self._form.step, summary=self._summary)

    @property
    def viewing_summary(self) -> bool:
        return self._summary

    @property
    def can_advance(self) -> bool:
        return not self._summary and can_advance(self._schema, self._form.step, self.answers)

    @property
    def auth_required(self) -> bool:
        return self._auth_required

    @property
    def is_uploading(self) -> bool:
        return self._photos.is_uploading

    @property
    def is_submitting(self) -> bool:
        return self._submission.is_submitting

    @property
    def submission_state(self) -> SubmissionState:
        return self._submission.state

    @property
    def phase(self) -> PostSubmitPhase:
        return self._phase

    @property
    def created_job_id(self) -> str | None:
        return self._submission.created_id

    @property
    def visit_fee_authorized(self) -> bool | None:
        return self._visit_fee_authorized

    @property
    def photos(self) -> tuple[PhotoEntry, ...]:
        return self._photos.entries

    def description(self) -> str:
        return synthesize(self.answers, self._schema)

    def summary(self) -> list[tuple[str, str]]:
        return summary_rows(self.answers, self._schema)

    def export_answers(self) -> dict[str, Any]:
        return to_jsonable(self._schema, self.answers)

    # -- Editing --

    def set_field(self, key: str, value: Any) -> FormSnapshot:
        return self._form.set_field(key, value)

    def toggle(self, key: str, value: str) -> FormSnapshot:
        return self._form.toggle_in_set(key, value)

    def select_photos(self, files: Sequence[PhotoFile]) -> list[PhotoEntry]:
        return self._photos.select_files(files)

    async def upload_photos(self, entries: Sequence[PhotoEntry]) -> None:
        await self._photos.upload_all(entries)

    async def add_photos(self, files: Iterable[PhotoFile]) -> list[PhotoEntry]:
        return await self._photos.add_files(list(files))

    def remove_photo(self, index: int) -> PhotoEntry:
        return self._photos.remove(index)

    # -- Navigation --

    def next(self) -> WizardPosition:
        """Advance one step; from the last step, enter the summary if signed in."""
        if self._phase != PostSubmitPhase.NONE:
            return self.position
        target = advance(self._schema, self.position, self.answers)
        if target.summary and not self._summary:
            if self._auth.get_current_user() is None:
                self._suspend_for_auth()
            else:
                self._enter_summary()
        elif target.step != self._form.step:
            self._form.set_step(target.step)
        return self.position

    def back(self) -> WizardPosition:
        if self._phase != PostSubmitPhase.NONE:
            return self.position
        self._countdown.cancel()
        target = retreat(self.position)
        if self._summary and not target.summary:
            self._summary = False
        elif target.step != self._form.step:
            self._form.set_step(target.step)
        return self.position

    def go_to_step(self, step: int) -> WizardPosition:
        """Jump back to an earlier step, e.g. to edit from the summary."""
        if self._phase != PostSubmitPhase.NONE or not 1 <= step <= self._form.step:
            return self.position
        self._countdown.cancel()
        self._summary = False
        self._form.set_step(step)
        return self.position

    # -- Submission --

    async def confirm(self) -> str | None:
        """Submit from the summary view. Safe to call more than once."""
        self._countdown.cancel()
        if not self._summary or self._phase != PostSubmitPhase.NONE:
            return self.created_job_id
        job_id = await self._submission.submit(self.answers)
        if job_id is not None:
            self._phase = PostSubmitPhase.AWAITING_VISIT_FEE
        return job_id

    def resume_after_auth(self) -> bool:
        """Continue after the user signed in; returns True if the wizard resumed."""
        if self._auth.get_current_user() is None:
            return False
        token = None
        if self._continuations is not None:
            token = self._continuations.consume(self._schema.wallet_key)
        if not self._auth_required and token is None:
            return False
        self._auth_required = False
        self._submission.cancel_authentication()
        if all_steps_complete(self._schema, self.answers):
            self._enter_summary()
        return True

    def complete_visit_fee(self, authorized: bool) -> str | None:
        """Record the visit-fee branch outcome and move to the success view."""
        if self._phase != PostSubmitPhase.AWAITING_VISIT_FEE:
            return None
        self._visit_fee_authorized = authorized
        self._phase = PostSubmitPhase.SUCCESS
        logger.info(
            "Job %s visit fee %s", self.created_job_id, "authorized" if authorized else "skipped"
        )
        return self.success_route

    @property
    def success_route(self) -> str | None:
        job_id = self.created_job_id
        if self._phase != PostSubmitPhase.SUCCESS or job_id is None:
            return None
        if self._visit_fee_authorized:
            return f"/esperando-proveedor?job_id={job_id}"
        return f"/job/{job_id}/payment"

    # -- Internals --

    def _enter_summary(self) -> None:
        self._summary = True
        if not self._auto_confirm:
            return
        try:
            self._countdown.start(self.confirm)
        except RuntimeError:
            logger.debug("No running event loop; countdown for %s not started", self._schema.id)

    def _suspend_for_auth(self) -> None:
        """Persist everything needed to come back to the summary after sign-in."""
        self._countdown.cancel()
        draft = make_draft(self._schema, self.answers, self._form.step)
        self._drafts.save(self._schema.wallet_key, draft, url=self._schema.return_route)
        if self._continuations is not None:
            self._continuations.put(
                ContinuationToken(
                    wallet_key=self._schema.wallet_key,
                    answers=draft.answers,
                    step=draft.step,
                    target_route=self._schema.return_route,
                )
            )
        self._auth_required = True
        logger.info("Wizard %s suspended for sign-in", self._schema.id)

    def _autosave(self, snapshot: FormSnapshot) -> None:
        if self._phase != PostSubmitPhase.NONE:
            return
        if self._submission.state == SubmissionState.SUCCESS:
            return
        if not is_filled(snapshot.answers.get(self._schema.anchor_field)):
            return
        draft = make_draft(self._schema, snapshot.answers, snapshot.step)
        self._drafts.save(self._schema.wallet_key, draft, url=self._schema.return_route)
