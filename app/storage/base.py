from abc import ABC, abstractmethod
from datetime import datetime


class BlobStoreError(Exception):
    pass


class BlobKeyNotFound(BlobStoreError):
    """The store answered: no object under this key."""


class BlobStoreUnavailable(BlobStoreError):
    """The store could not be reached or refused to mint a credential."""


class BlobStore(ABC):
    @abstractmethod
    def mint_retrieval_credential(self, key: str, ttl_seconds: int) -> tuple[str, datetime]:
        """Return (url, expires_at) granting read access to key for ttl_seconds."""
        raise NotImplementedError
