"""
Execution: issue(unit_id, storage_key, ttl) -> DelegatedURL.
Every call mints a fresh credential from the blob store; nothing is cached or reused.
"""
from __future__ import annotations

import logging

from app.access.config import get_delegated_url_max_ttl, get_delegated_url_ttl
from app.access.errors import NoStorageKey, StorageKeyNotFound, UpstreamUnavailable
from app.access.models import DelegatedURL
from app.storage.base import BlobKeyNotFound, BlobStore, BlobStoreUnavailable

logger = logging.getLogger(__name__)

MIN_TTL_SECONDS = 60


class DelegatedURLIssuer:
    def __init__(self, blob_store: BlobStore) -> None:
        self.blob_store = blob_store

    def clamp_ttl(self, ttl: int | None) -> int:
        ttl = get_delegated_url_ttl() if ttl is None else int(ttl)
        return max(MIN_TTL_SECONDS, min(ttl, get_delegated_url_max_ttl()))

    def issue(self, unit_id: str, storage_key: str | None, ttl: int | None = None) -> DelegatedURL:
        """
        Raises NoStorageKey / StorageKeyNotFound for data-integrity gaps (not retryable)
        and UpstreamUnavailable when the blob store cannot mint (retryable).
        """
        key = (storage_key or "").strip()
        if not key:
            logger.error("delegated_url_no_key", extra={"unit_id": unit_id})
            raise NoStorageKey(f"content unit {unit_id} has no storage key")

        ttl_seconds = self.clamp_ttl(ttl)
        try:
            url, expires_at = self.blob_store.mint_retrieval_credential(key, ttl_seconds)
        except BlobKeyNotFound as e:
            logger.error("delegated_url_key_not_found", extra={"unit_id": unit_id, "storage_key": key})
            raise StorageKeyNotFound(f"storage key for unit {unit_id} not found") from e
        except BlobStoreUnavailable as e:
            logger.warning("delegated_url_upstream_unavailable", extra={"unit_id": unit_id, "error": str(e)})
            raise UpstreamUnavailable(f"blob store unavailable for unit {unit_id}") from e

        return DelegatedURL(content_unit_id=unit_id, url=url, expires_at=expires_at)
