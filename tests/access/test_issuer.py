"""Tests for DelegatedURLIssuer — TTL bounds and error mapping."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app.access.errors import NoStorageKey, StorageKeyNotFound, UpstreamUnavailable
from app.access.issuer import MIN_TTL_SECONDS, DelegatedURLIssuer
from app.core.config import settings
from app.storage.base import BlobKeyNotFound, BlobStoreUnavailable


def _store():
    store = MagicMock()
    counter = iter(range(1, 100))

    def mint(key, ttl_seconds):
        return f"https://cdn.test/{key}?n={next(counter)}", datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)

    store.mint_retrieval_credential.side_effect = mint
    return store


class TestClampTtl:
    def test_default(self):
        assert DelegatedURLIssuer(_store()).clamp_ttl(None) == settings.delegated_url_ttl_seconds

    def test_bounds(self):
        issuer = DelegatedURLIssuer(_store())
        assert issuer.clamp_ttl(1) == MIN_TTL_SECONDS
        assert issuer.clamp_ttl(10**6) == settings.delegated_url_max_ttl_seconds
        assert issuer.clamp_ttl(120) == 120


class TestIssue:
    def test_issues_fresh_url_each_call(self):
        store = _store()
        issuer = DelegatedURLIssuer(store)
        first = issuer.issue("unit-1", "videos/1.mp4")
        second = issuer.issue("unit-1", "videos/1.mp4")

        assert first.content_unit_id == "unit-1"
        assert first.url != second.url
        assert first.expires_at > datetime.now(timezone.utc)
        assert store.mint_retrieval_credential.call_count == 2

    def test_ttl_passed_clamped(self):
        store = _store()
        DelegatedURLIssuer(store).issue("unit-1", "videos/1.mp4", ttl=5)
        store.mint_retrieval_credential.assert_called_once_with("videos/1.mp4", MIN_TTL_SECONDS)

    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_no_storage_key(self, key):
        store = _store()
        with pytest.raises(NoStorageKey):
            DelegatedURLIssuer(store).issue("unit-1", key)
        store.mint_retrieval_credential.assert_not_called()

    def test_key_not_found(self):
        store = MagicMock()
        store.mint_retrieval_credential.side_effect = BlobKeyNotFound("videos/1.mp4")
        with pytest.raises(StorageKeyNotFound) as exc:
            DelegatedURLIssuer(store).issue("unit-1", "videos/1.mp4")
        assert exc.value.retryable is False

    def test_upstream_unavailable(self):
        store = MagicMock()
        store.mint_retrieval_credential.side_effect = BlobStoreUnavailable("timeout")
        with pytest.raises(UpstreamUnavailable) as exc:
            DelegatedURLIssuer(store).issue("unit-1", "videos/1.mp4")
        assert exc.value.retryable is True
