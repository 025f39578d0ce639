"""
Error taxonomy for the access core.

- terminal: NotFound, NotPublished (never retried)
- transient: StorageUnavailable, UpstreamUnavailable (retry with backoff; never coerced into a deny)
- data integrity: NoStorageKey, StorageKeyNotFound (logged loudly, never auto-fixed)

"Not purchased" is a decision, not an error: it never appears here.
"""
from __future__ import annotations

from app.access.models import AccessStage


class AccessError(Exception):
    retryable = False


class NotFound(AccessError):
    pass


class NotPublished(AccessError):
    pass


class TransientError(AccessError):
    retryable = True


class StorageUnavailable(TransientError):
    """Ledger / catalog backing store failed or timed out."""


class UpstreamUnavailable(TransientError):
    """Blob store could not mint a credential."""


class DataIntegrityError(AccessError):
    pass


class NoStorageKey(DataIntegrityError):
    """Accessible unit without a storage key."""


class StorageKeyNotFound(DataIntegrityError):
    """Storage key set but the blob store has no such object."""


class AccessRequestFailed(AccessError):
    """Terminal FAILED state of a coordinator request; carries the stage it failed in."""

    def __init__(self, stage: AccessStage, cause: AccessError) -> None:
        super().__init__(f"{stage.value}: {cause}")
        self.stage = stage
        self.cause = cause
        self.retryable = cause.retryable
