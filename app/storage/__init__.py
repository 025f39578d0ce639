"""
Blob store backends for course video assets.
get_blob_store() picks the backend configured in settings.storage_backend.
"""
from functools import lru_cache

from app.core.config import settings
from app.storage.base import BlobKeyNotFound, BlobStore, BlobStoreError, BlobStoreUnavailable


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    if settings.storage_backend == "local":
        from app.storage.local import LocalBlobStore

        return LocalBlobStore.from_settings()
    from app.storage.s3 import S3BlobStore

    return S3BlobStore.from_settings()


__all__ = [
    "BlobKeyNotFound",
    "BlobStore",
    "BlobStoreError",
    "BlobStoreUnavailable",
    "get_blob_store",
]
