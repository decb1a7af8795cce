"""Adapters for the external job, blob and draft stores."""

from __future__ import annotations

from chamby.core.config import BlobStoreConfig, JobStoreConfig
from chamby.stores.blob import BlobStore, InMemoryBlobStore, SupabaseBlobStore
from chamby.stores.jobs import InMemoryJobStore, JobStore, SupabaseJobStore


def create_blob_store(config: BlobStoreConfig) -> BlobStore:
    """Factory: select a blob store implementation from config.provider."""
    provider = config.provider.lower()
    if provider == "memory":
        return InMemoryBlobStore(bucket=config.bucket)
    if provider == "supabase":
        return SupabaseBlobStore(config)
    raise ValueError(
        f"Unknown blob store provider {config.provider!r}. Available: memory, supabase"
    )


def create_job_store(config: JobStoreConfig) -> JobStore:
    """Factory: select a job store implementation from config.provider."""
    provider = config.provider.lower()
    if provider == "memory":
        return InMemoryJobStore()
    if provider == "supabase":
        return SupabaseJobStore(config)
    raise ValueError(
        f"Unknown job store provider {config.provider!r}. Available: memory, supabase"
    )
