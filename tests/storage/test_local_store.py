"""Tests for LocalBlobStore — signed links, expiry, path containment."""
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest

from app.storage.base import BlobKeyNotFound, BlobStoreUnavailable
from app.storage.local import LocalBlobStore


@pytest.fixture
def store(tmp_path):
    (tmp_path / "videos").mkdir()
    (tmp_path / "videos" / "intro.mp4").write_bytes(b"\x00\x01")
    return LocalBlobStore(str(tmp_path), "http://media.test/media/", "secret")


def _token(url):
    return parse_qs(urlparse(url).query)["token"][0]


def test_mint_and_verify(store):
    url, expires_at = store.mint_retrieval_credential("videos/intro.mp4", 120)
    assert url.startswith("http://media.test/media/videos/intro.mp4?token=")
    assert expires_at > datetime.now(timezone.utc)
    assert store.verify_token("videos/intro.mp4", _token(url)) is True


def test_each_link_distinct(store):
    first, _ = store.mint_retrieval_credential("videos/intro.mp4", 120)
    second, _ = store.mint_retrieval_credential("videos/intro.mp4", 120)
    assert first != second


def test_token_bound_to_key_and_expiry(store):
    url, _ = store.mint_retrieval_credential("videos/intro.mp4", 120)
    token = _token(url)
    assert store.verify_token("videos/other.mp4", token) is False
    later = datetime.now(timezone.utc) + timedelta(seconds=121)
    assert store.verify_token("videos/intro.mp4", token, now=later) is False
    assert store.verify_token("videos/intro.mp4", token + "x") is False


def test_missing_file(store):
    with pytest.raises(BlobKeyNotFound):
        store.mint_retrieval_credential("videos/missing.mp4", 120)


def test_path_escape_rejected(store):
    with pytest.raises(BlobKeyNotFound):
        store.path_for("../../etc/passwd")


def test_missing_directory(tmp_path):
    store = LocalBlobStore(str(tmp_path / "nowhere"), "http://media.test/media", "secret")
    with pytest.raises(BlobStoreUnavailable):
        store.mint_retrieval_credential("videos/intro.mp4", 120)


def test_requires_secret(tmp_path):
    with pytest.raises(RuntimeError):
        LocalBlobStore(str(tmp_path), "http://media.test/media", "")


def test_link_older_than_max_ttl_rejected(store):
    # signed an hour ago: past both its own ttl and the store-wide max age
    with patch("itsdangerous.timed.time.time", return_value=time.time() - 3600):
        url, _ = store.mint_retrieval_credential("videos/intro.mp4", 900)
    assert store.verify_token("videos/intro.mp4", _token(url)) is False


def test_link_within_ttl_after_signing(store):
    with patch("itsdangerous.timed.time.time", return_value=time.time() - 30):
        url, _ = store.mint_retrieval_credential("videos/intro.mp4", 120)
    assert store.verify_token("videos/intro.mp4", _token(url)) is True
    later = datetime.now(timezone.utc) + timedelta(seconds=91)
    assert store.verify_token("videos/intro.mp4", _token(url), now=later) is False
