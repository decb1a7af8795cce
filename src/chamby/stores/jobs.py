"""Job store Protocol, in-memory store and PostgREST client."""

from __future__ import annotations

import logging
import uuid
from typing import Protocol, runtime_checkable

import httpx

from chamby.booking.models import JobRecord
from chamby.core.config import JobStoreConfig
from chamby.core.errors import JobStoreError
from chamby.stores.http import error_detail, request_with_retry, service_headers

logger = logging.getLogger(__name__)


@runtime_checkable
class JobStore(Protocol):
    """Protocol for the remote jobs table."""

    async def create(self, record: JobRecord) -> str: ...


class InMemoryJobStore:
    """In-memory dict store for job records."""

    def __init__(self) -> None:
        self._records: dict[str, JobRecord] = {}

    async def create(self, record: JobRecord) -> str:
        job_id = str(uuid.uuid4())
        self._records[job_id] = record
        return job_id

    def get(self, job_id: str) -> JobRecord | None:
        return self._records.get(job_id)

    def list_all(self) -> list[JobRecord]:
        return list(self._records.values())

    @property
    def count(self) -> int:
        return len(self._records)


class SupabaseJobStore:
    """Inserts job rows through the PostgREST API."""

    def __init__(self, config: JobStoreConfig) -> None:
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout_seconds),
            headers=service_headers(config.api_key),
        )

    async def create(self, record: JobRecord) -> str:
        # No retry here: a retried insert may create a duplicate row.
        try:
            resp = await self._http.post(
                f"/rest/v1/{self.config.table}",
                params={"select": "id"},
                json=record.model_dump(mode="json"),
                headers={"Prefer": "return=representation"},
            )
        except httpx.HTTPError as exc:
            raise JobStoreError(str(exc)) from exc
        if resp.status_code >= 400:
            raise JobStoreError(error_detail(resp), status_code=resp.status_code)

        data = resp.json()
        row = data[0] if isinstance(data, list) and data else data
        if not isinstance(row, dict) or "id" not in row:
            raise JobStoreError("Job store returned no id")
        logger.info("Created job %s in %s", row["id"], record.category)
        return str(row["id"])

    async def close(self) -> None:
        await self._http.aclose()
