"""Tests for the photo upload manager."""

from __future__ import annotations

import asyncio

import pytest

from chamby.auth.session import AuthSession
from chamby.booking.form_state import FormStateStore
from chamby.booking.models import PhotoFile
from chamby.booking.photos import PhotoUploadManager
from chamby.booking.records import build_job_record
from chamby.core.types import NotificationVariant
from chamby.notifications.center import NotificationCenter
from chamby.stores.blob import InMemoryBlobStore

from tests.conftest import MARIA, PLUMBING_EMERGENCY, FlakyBlobStore


def _file(name: str, payload: bytes = b"\xff\xd8jpeg") -> PhotoFile:
    return PhotoFile(filename=name, content=payload)


class GatedBlobStore(InMemoryBlobStore):
    """Blob store whose writes wait until the test opens the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.started = 0

    async def store(self, path: str, content: bytes, content_type: str) -> None:
        self.started += 1
        await self.gate.wait()
        await super().store(path, content, content_type)


class TestPhotoUploadManager:
    def setup_method(self):
        self.notifier = NotificationCenter()
        self.auth = AuthSession()

    def _manager(self, schema, blob_store):
        form = FormStateStore(schema)
        return form, PhotoUploadManager(form, blob_store, self.auth, self.notifier)

    def test_select_is_synchronous_and_batched(self, plumbing):
        form, manager = self._manager(plumbing, InMemoryBlobStore())
        versions = []
        form.subscribe(lambda snap: versions.append(snap.version))
        entries = manager.select_files([_file("a.jpg"), _file("b.png")])
        assert len(entries) == 2
        assert len(versions) == 1
        assert all(not e.uploaded for e in manager.entries)
        assert manager.entries[0].url.startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_all_uploads_succeed(self, plumbing):
        blob = InMemoryBlobStore()
        _, manager = self._manager(plumbing, blob)
        await manager.add_files([_file("a.jpg"), _file("b.PNG")])
        assert [e.uploaded for e in manager.entries] == [True, True]
        assert all(e.file is None for e in manager.entries)
        assert all(url.startswith("memory://job-photos/temp-uploads/") for url in manager.uploaded_urls())
        assert any(path.endswith(".png") for path in blob.objects)
        assert not manager.is_uploading

    @pytest.mark.asyncio
    async def test_signed_in_user_namespace(self, plumbing):
        self.auth.sign_in(MARIA)
        blob = InMemoryBlobStore()
        _, manager = self._manager(plumbing, blob)
        await manager.add_files([_file("a.jpg")])
        (path,) = blob.objects
        assert path.startswith(f"{MARIA.id}/")
        assert "?expires_in=31536000" in manager.uploaded_urls()[0]

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_batch(self, plumbing):
        form, manager = self._manager(plumbing, FlakyBlobStore())
        files = [_file("1.jpg"), _file("2.jpg", b"fail"), _file("3.jpg"), _file("4.jpg")]
        await manager.add_files(files)

        assert [e.uploaded for e in manager.entries] == [True, False, True, True]
        assert len(manager.entries) == 4
        (note,) = self.notifier.pending
        assert note.title == "Error al subir imagen"
        assert note.description == "Payload too large"
        assert note.variant == NotificationVariant.DESTRUCTIVE

        for key, value in PLUMBING_EMERGENCY.items():
            form.set_field(key, value)
        record = build_job_record(plumbing, form.answers, user_id=MARIA.id)
        assert len(record.photos) == 3
        assert record.photo_count == 3

    @pytest.mark.asyncio
    async def test_is_uploading_spans_the_batch(self, plumbing):
        blob = GatedBlobStore()
        _, manager = self._manager(plumbing, blob)
        entries = manager.select_files([_file("a.jpg"), _file("b.jpg")])
        assert manager.is_uploading
        task = asyncio.create_task(manager.upload_all(entries))
        await asyncio.sleep(0)
        assert manager.is_uploading
        blob.gate.set()
        await task
        assert not manager.is_uploading

    @pytest.mark.asyncio
    async def test_removed_entry_is_not_resurrected(self, plumbing):
        blob = GatedBlobStore()
        _, manager = self._manager(plumbing, blob)
        entries = manager.select_files([_file("a.jpg"), _file("b.jpg"), _file("c.jpg")])
        task = asyncio.create_task(manager.upload_all(entries))
        await asyncio.sleep(0)

        removed = manager.remove(1)
        assert removed.id == entries[1].id
        blob.gate.set()
        await task

        ids = [e.id for e in manager.entries]
        assert ids == [entries[0].id, entries[2].id]
        assert all(e.uploaded for e in manager.entries)

    @pytest.mark.asyncio
    async def test_overlapping_batches_match_by_identity(self, plumbing):
        blob = GatedBlobStore()
        _, manager = self._manager(plumbing, blob)
        first = manager.select_files([_file("a.jpg")])
        first_task = asyncio.create_task(manager.upload_all(first))
        await asyncio.sleep(0)
        second = manager.select_files([_file("b.jpg"), _file("c.jpg")])
        second_task = asyncio.create_task(manager.upload_all(second))
        await asyncio.sleep(0)

        blob.gate.set()
        await asyncio.gather(first_task, second_task)
        assert [e.id for e in manager.entries] == [first[0].id] + [e.id for e in second]
        assert all(e.uploaded for e in manager.entries)
        assert len(set(manager.uploaded_urls())) == 3

    def test_remove_out_of_range(self, plumbing):
        _, manager = self._manager(plumbing, InMemoryBlobStore())
        with pytest.raises(IndexError):
            manager.remove(0)

    def test_remove_pending_entry(self, plumbing):
        _, manager = self._manager(plumbing, InMemoryBlobStore())
        manager.select_files([_file("a.jpg")])
        assert manager.is_uploading
        manager.remove(0)
        assert manager.entries == ()
        assert not manager.is_uploading

    @pytest.mark.asyncio
    async def test_failed_upload_settles_the_flag(self, plumbing):
        _, manager = self._manager(plumbing, FlakyBlobStore())
        entries = manager.select_files([_file("1.jpg", b"fail")])
        assert manager.is_uploading
        await manager.upload_all(entries)
        assert not manager.is_uploading
        assert not manager.entries[0].uploaded
