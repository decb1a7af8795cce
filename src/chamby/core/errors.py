"""Exception hierarchy for Chamby."""

from __future__ import annotations


class ChambyError(Exception):
    """Base class for all Chamby errors."""


class SchemaError(ChambyError):
    """A vertical schema file is malformed."""


class StoreError(ChambyError):
    """An external store call failed.

    ``detail`` carries the store's own error message so it can be shown
    to the user as-is.
    """

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class BlobStoreError(StoreError):
    """Photo storage or URL signing failed."""


class JobStoreError(StoreError):
    """Job record creation failed."""