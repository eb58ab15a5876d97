"""Exception hierarchy for the ingestion pipeline."""
from typing import Any, Optional


class IngestError(RuntimeError):
    """Base error for property media ingestion."""


class ScanError(IngestError):
    """A dropped directory or file could not be read."""


class NoMatchError(IngestError):
    """A folder name matched no property record."""

    def __init__(self, folder_name: str):
        super().__init__(f"No property matched for {folder_name}")
        self.folder_name = folder_name


class UploadError(IngestError):
    """A single file could not be stored."""


class ReconciliationError(IngestError):
    """The property update after uploading failed."""


class UploadInProgressError(IngestError):
    """An upload-all run is already in flight."""


class APIError(IngestError):
    """Non-2xx response from a REST endpoint."""

    def __init__(self, status_code: int, method: str, endpoint: str, detail: Optional[Any] = None):
        super().__init__(f"API error {status_code} on {method} {endpoint}: {detail}")
        self.status_code = status_code
        self.method = method
        self.endpoint = endpoint
        self.detail = detail
