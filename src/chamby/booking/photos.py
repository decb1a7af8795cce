"""Photo upload manager.

Selected files show up immediately as pending entries with a local preview
URL. Each entry then runs its own store-then-sign pipeline; results are
matched back by entry id, so removals and overlapping batches are safe.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence

from chamby.auth.session import AuthService
from chamby.booking.form_state import FormStateStore
from chamby.booking.models import PhotoEntry, PhotoFile
from chamby.core.errors import StoreError
from chamby.notifications.center import NotificationCenter
from chamby.stores.blob import BlobStore

logger = logging.getLogger(__name__)

UPLOAD_ERROR_TITLE = "Error al subir imagen"


class PhotoUploadManager:
    def __init__(
        self,
        form: FormStateStore,
        blob_store: BlobStore,
        auth: AuthService,
        notifier: NotificationCenter,
        temp_prefix: str = "temp-uploads",
        url_ttl_seconds: int = 31_536_000,
    ) -> None:
        self._form = form
        self._blob = blob_store
        self._auth = auth
        self._notifier = notifier
        self._temp_prefix = temp_prefix
        self._ttl = url_ttl_seconds
        self._pending: set[str] = set()

    @property
    def is_uploading(self) -> bool:
        """True from selection until every selected entry has settled."""
        return bool(self._pending)

    @property
    def entries(self) -> tuple[PhotoEntry, ...]:
        key = self._form.schema.photo_field
        return self._form.answers[key] if key else ()

    def select_files(self, files: Sequence[PhotoFile]) -> list[PhotoEntry]:
        """Append a pending entry per file in one mutation, before any I/O."""
        if self._form.schema.photo_field is None:
            raise ValueError(f"Vertical {self._form.schema.id!r} does not collect photos")
        new_entries = [PhotoEntry(file=f, url=f.preview_url()) for f in files]
        if new_entries:
            self._form.update_photos(lambda current: current + tuple(new_entries))
            self._pending.update(e.id for e in new_entries)
        return new_entries

    async def upload_all(self, entries: Sequence[PhotoEntry]) -> None:
        """Upload a batch. Failures are reported per entry and never raised."""
        if not entries:
            return
        await asyncio.gather(*(self._upload_one(entry) for entry in entries))

    async def add_files(self, files: Sequence[PhotoFile]) -> list[PhotoEntry]:
        entries = self.select_files(files)
        await self.upload_all(entries)
        return entries

    def remove(self, index: int) -> PhotoEntry:
        """Remove one entry by position, whatever its upload state."""
        current = self.entries
        if not 0 <= index < len(current):
            raise IndexError(f"No photo at position {index}")
        removed = current[index]
        self.remove_by_id(removed.id)
        return removed

    def remove_by_id(self, entry_id: str) -> bool:
        self._pending.discard(entry_id)
        if not any(p.id == entry_id for p in self.entries):
            return False
        self._form.update_photos(lambda current: (p for p in current if p.id != entry_id))
        return True

    def uploaded_urls(self) -> list[str]:
        return [p.url for p in self.entries if p.uploaded]

    # -- internals --

    def _path_for(self, photo: PhotoFile) -> str:
        user = self._auth.get_current_user()
        namespace = user.id if user is not None else self._temp_prefix
        return f"{namespace}/{uuid.uuid4().hex}.{photo.extension}"

    def _replace(self, entry_id: str, **changes: object) -> bool:
        if not any(p.id == entry_id for p in self.entries):
            return False
        self._form.update_photos(
            lambda current: (
                p.model_copy(update=changes) if p.id == entry_id else p for p in current
            )
        )
        return True

    async def _upload_one(self, entry: PhotoEntry) -> None:
        try:
            await self._run_upload(entry)
        finally:
            self._pending.discard(entry.id)

    async def _run_upload(self, entry: PhotoEntry) -> None:
        photo = entry.file
        if photo is None:
            return
        path = self._path_for(photo)
        # The entry gives up its binary once the upload starts.
        self._replace(entry.id, file=None)

        try:
            await self._blob.store(path, photo.content, photo.content_type)
            url = await self._blob.get_durable_url(path, self._ttl)
        except StoreError as exc:
            logger.warning("Upload of %s failed: %s", photo.filename, exc.detail)
            self._notifier.error(UPLOAD_ERROR_TITLE, exc.detail)
            return
        except Exception as exc:
            logger.exception("Unexpected error uploading %s", photo.filename)
            self._notifier.error(UPLOAD_ERROR_TITLE, str(exc))
            return

        if not self._replace(entry.id, url=url, uploaded=True):
            logger.debug("Photo %s was removed before its upload finished", entry.id)
