"""
S3-compatible blob store (AWS S3, R2, MinIO).
head_object tells "no such key" apart from service trouble; the presigned GET is minted per call.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import boto3
import pybreaker
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.services.circuit_breaker import get_circuit_breaker
from app.storage.base import BlobKeyNotFound, BlobStore, BlobStoreUnavailable

logger = logging.getLogger(__name__)

_MISSING_KEY_CODES = {"404", "NoSuchKey", "NotFound"}


class S3BlobStore(BlobStore):
    def __init__(self, client, bucket: str, breaker: pybreaker.CircuitBreaker | None = None) -> None:
        self.client = client
        self.bucket = bucket
        self.breaker = breaker or get_circuit_breaker("blob_store", exclude=[BlobKeyNotFound])

    @classmethod
    def from_settings(cls) -> "S3BlobStore":
        if not settings.s3_bucket:
            raise RuntimeError("S3 storage is not configured: set S3_BUCKET")
        cfg = Config(
            signature_version="s3v4",
            s3={"addressing_style": settings.s3_addressing_style},
            connect_timeout=settings.s3_connect_timeout,
            read_timeout=settings.s3_read_timeout,
            retries={"max_attempts": 2},
        )
        client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            region_name=settings.s3_region,
            config=cfg,
        )
        return cls(client, settings.s3_bucket)

    def mint_retrieval_credential(self, key: str, ttl_seconds: int) -> tuple[str, datetime]:
        try:
            return self.breaker.call(self._mint, key, ttl_seconds)
        except pybreaker.CircuitBreakerError as e:
            raise BlobStoreUnavailable(f"blob store circuit open: {e}") from e

    def _mint(self, key: str, ttl_seconds: int) -> tuple[str, datetime]:
        issued_at = datetime.now(timezone.utc)
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            url = self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=int(ttl_seconds),
            )
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_KEY_CODES:
                raise BlobKeyNotFound(key) from e
            logger.warning("s3_client_error", extra={"storage_key": key, "error": code or type(e).__name__})
            raise BlobStoreUnavailable(f"s3 error {code} for key {key}") from e
        except BotoCoreError as e:
            logger.warning("s3_unavailable", extra={"storage_key": key, "error": type(e).__name__})
            raise BlobStoreUnavailable(f"s3 unreachable for key {key}") from e
        return url, issued_at + timedelta(seconds=ttl_seconds)
