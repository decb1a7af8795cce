"""Blob store Protocol, in-memory store and Supabase Storage client."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable
from urllib.parse import quote

import httpx

from chamby.core.config import BlobStoreConfig
from chamby.core.errors import BlobStoreError
from chamby.stores.http import error_detail, request_with_retry, service_headers

logger = logging.getLogger(__name__)


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for the photo binary store."""

    async def store(self, path: str, content: bytes, content_type: str) -> None: ...

    async def get_durable_url(self, path: str, ttl_seconds: int) -> str: ...


class InMemoryBlobStore:
    """Dict-backed blob store for development and tests."""

    def __init__(self, bucket: str = "job-photos") -> None:
        self._bucket = bucket
        self._objects: dict[str, tuple[bytes, str]] = {}

    @property
    def objects(self) -> dict[str, tuple[bytes, str]]:
        return dict(self._objects)

    async def store(self, path: str, content: bytes, content_type: str) -> None:
        if path in self._objects:
            raise BlobStoreError(f"The resource already exists: {path}", status_code=409)
        self._objects[path] = (content, content_type)

    async def get_durable_url(self, path: str, ttl_seconds: int) -> str:
        if path not in self._objects:
            raise BlobStoreError(f"Object not found: {path}", status_code=404)
        return f"memory://{self._bucket}/{path}?expires_in={ttl_seconds}"


class SupabaseBlobStore:
    """Talks to the Supabase Storage REST API."""

    def __init__(self, config: BlobStoreConfig) -> None:
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout_seconds),
            headers=service_headers(config.api_key),
        )

    def _object_path(self, path: str) -> str:
        return f"{quote(self.config.bucket)}/{quote(path)}"

    async def store(self, path: str, content: bytes, content_type: str) -> None:
        try:
            resp = await request_with_retry(
                self._http,
                "POST",
                f"/storage/v1/object/{self._object_path(path)}",
                max_retries=self.config.max_retries,
                content=content,
                headers={"Content-Type": content_type, "x-upsert": "false"},
            )
        except httpx.HTTPError as exc:
            raise BlobStoreError(str(exc)) from exc
        if resp.status_code >= 400:
            raise BlobStoreError(error_detail(resp), status_code=resp.status_code)
        logger.debug("Stored %s (%d bytes)", path, len(content))

    async def get_durable_url(self, path: str, ttl_seconds: int) -> str:
        try:
            resp = await request_with_retry(
                self._http,
                "POST",
                f"/storage/v1/object/sign/{self._object_path(path)}",
                max_retries=self.config.max_retries,
                json={"expiresIn": ttl_seconds},
            )
        except httpx.HTTPError as exc:
            raise BlobStoreError(str(exc)) from exc
        if resp.status_code >= 400:
            raise BlobStoreError(error_detail(resp), status_code=resp.status_code)
        signed = resp.json().get("signedURL")
        if not signed:
            raise BlobStoreError("Signed URL missing from storage response")
        return f"{self.config.base_url.rstrip('/')}/storage/v1{signed}"

    async def close(self) -> None:
        await self._http.aclose()
