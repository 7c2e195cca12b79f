"""Error taxonomy for the pinning pipeline."""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "PinningError",
    "PayloadValidationError",
    "NoProviderAvailableError",
    "ProviderError",
    "UploadError",
    "PinError",
    "IndexerSyncError",
    "IndexerUnavailableError",
    "IndexerResponseError",
    "TempFileMissingError",
    "ReleasePinningError",
    "LogoPinningError",
]


class PinningError(Exception):
    """Base class for pinning pipeline errors."""


class PayloadValidationError(PinningError):
    """Raised when a job payload does not match the shape its job type requires.

    Jobs failing validation are never retried: the payload will not change
    between attempts.
    """

    def __init__(self, job_name: str, detail: object) -> None:
        super().__init__(f"Invalid payload for job '{job_name}': {detail}")
        self.job_name = job_name
        self.detail = detail


class NoProviderAvailableError(PinningError):
    """Raised when every configured persistence provider is unhealthy."""


class ProviderError(PinningError):
    """Base class for failures of a single provider call."""


class UploadError(ProviderError):
    """Raised when a file could not be uploaded to the provider."""


class PinError(ProviderError):
    """Raised when a content identifier could not be pinned."""


class IndexerSyncError(PinningError):
    """Raised when a pin-record write to the indexer fails."""


class IndexerUnavailableError(IndexerSyncError):
    """Network level failure talking to the indexer (DNS, connect, timeout)."""


class IndexerResponseError(IndexerSyncError):
    """The indexer answered with an error status or an unusable body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TempFileMissingError(PinningError):
    """Raised when a job's temporary file is gone before it could be pinned."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Temp file does not exist: {path}. "
            "The file may have been deleted or the path is incorrect."
        )
        self.path = path


class ReleasePinningError(PinningError):
    """Aggregate failure for a release job: at least one file step failed."""

    def __init__(self, release_id: str, failed_pin_record_ids: Sequence[str] = ()) -> None:
        super().__init__(
            f"One or more files failed to process for release {release_id}. See logs for details."
        )
        self.release_id = release_id
        self.failed_pin_record_ids = tuple(failed_pin_record_ids)


class LogoPinningError(PinningError):
    """Raised when an organization logo could not be uploaded or pinned."""

    def __init__(self, organization_id: str) -> None:
        super().__init__(
            f"Failed to pin logo for organization {organization_id}. See logs for details."
        )
        self.organization_id = organization_id
