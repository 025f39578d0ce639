"""Tests for S3BlobStore — error classification and circuit breaker behaviour (boto3 client mocked)."""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pybreaker
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from app.storage.base import BlobKeyNotFound, BlobStoreUnavailable
from app.storage.s3 import S3BlobStore


def _client_error(code, op="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


def _store(client, fail_max=3):
    breaker = pybreaker.CircuitBreaker(fail_max=fail_max, reset_timeout=60, exclude=[BlobKeyNotFound])
    return S3BlobStore(client, "course-videos", breaker=breaker)


def test_mints_presigned_url():
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://s3.test/course-videos/v.mp4?X-Amz-Signature=abc"
    before = datetime.now(timezone.utc)

    url, expires_at = _store(client).mint_retrieval_credential("v.mp4", 300)

    assert url.startswith("https://s3.test/")
    assert 299 <= (expires_at - before).total_seconds() <= 301
    client.head_object.assert_called_once_with(Bucket="course-videos", Key="v.mp4")
    client.generate_presigned_url.assert_called_once_with(
        ClientMethod="get_object",
        Params={"Bucket": "course-videos", "Key": "v.mp4"},
        ExpiresIn=300,
    )


@pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
def test_missing_key(code):
    client = MagicMock()
    client.head_object.side_effect = _client_error(code)
    with pytest.raises(BlobKeyNotFound):
        _store(client).mint_retrieval_credential("v.mp4", 300)
    client.generate_presigned_url.assert_not_called()


def test_service_error_is_unavailable():
    client = MagicMock()
    client.head_object.side_effect = _client_error("503")
    with pytest.raises(BlobStoreUnavailable):
        _store(client).mint_retrieval_credential("v.mp4", 300)


def test_connection_error_is_unavailable():
    client = MagicMock()
    client.head_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.test")
    with pytest.raises(BlobStoreUnavailable):
        _store(client).mint_retrieval_credential("v.mp4", 300)


def test_breaker_opens_after_repeated_failures():
    client = MagicMock()
    client.head_object.side_effect = _client_error("InternalError")
    store = _store(client, fail_max=2)

    for _ in range(3):
        with pytest.raises(BlobStoreUnavailable):
            store.mint_retrieval_credential("v.mp4", 300)

    assert store.breaker.current_state == pybreaker.STATE_OPEN
    # open circuit: the client is no longer called
    assert client.head_object.call_count == 2


def test_missing_keys_do_not_open_breaker():
    client = MagicMock()
    client.head_object.side_effect = _client_error("NoSuchKey")
    store = _store(client, fail_max=2)

    for _ in range(4):
        with pytest.raises(BlobKeyNotFound):
            store.mint_retrieval_credential("v.mp4", 300)

    assert store.breaker.current_state == pybreaker.STATE_CLOSED
