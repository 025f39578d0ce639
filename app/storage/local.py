"""
Local filesystem blob store for development and tests.
Links carry an itsdangerous timed signature over (key, ttl); the media route checks it with verify_token.
"""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.core.config import settings
from app.storage.base import BlobKeyNotFound, BlobStore, BlobStoreUnavailable

_SALT = "delegated-url"


class LocalBlobStore(BlobStore):
    def __init__(self, base_dir: str, public_base: str, secret: str, max_ttl_seconds: int | None = None) -> None:
        if not secret:
            raise RuntimeError("local storage needs LOCAL_STORAGE_SECRET to sign links")
        self.base_dir = base_dir
        self.public_base = public_base.rstrip("/")
        self.max_ttl_seconds = max_ttl_seconds or settings.delegated_url_max_ttl_seconds
        self._serializer = URLSafeTimedSerializer(secret, salt=_SALT)

    @classmethod
    def from_settings(cls) -> "LocalBlobStore":
        return cls(
            base_dir=settings.local_storage_path,
            public_base=settings.local_storage_public_base,
            secret=settings.local_storage_secret,
        )

    def path_for(self, key: str) -> str:
        root = os.path.abspath(self.base_dir)
        path = os.path.abspath(os.path.join(root, key.lstrip("/")))
        if os.path.commonpath([root, path]) != root:
            raise BlobKeyNotFound(key)
        return path

    def mint_retrieval_credential(self, key: str, ttl_seconds: int) -> tuple[str, datetime]:
        if not os.path.isdir(self.base_dir):
            raise BlobStoreUnavailable(f"storage directory missing: {self.base_dir}")
        if not os.path.isfile(self.path_for(key)):
            raise BlobKeyNotFound(key)
        # nonce: two links for the same key and second are still distinct credentials
        token = self._serializer.dumps({"k": key, "t": int(ttl_seconds), "n": os.urandom(6).hex()})
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        return f"{self.public_base}/{quote(key)}?token={token}", expires_at

    def verify_token(self, key: str, token: str, now: datetime | None = None) -> bool:
        try:
            # max_age bounds any link by the longest TTL we ever issue
            data, signed_at = self._serializer.loads(token, max_age=self.max_ttl_seconds, return_timestamp=True)
        except SignatureExpired:
            return False
        except BadSignature:
            return False
        if data.get("k") != key:
            return False
        now = now or datetime.now(timezone.utc)
        return signed_at + timedelta(seconds=int(data.get("t", 0))) > now
