"""
Access config — typed wrappers over app.core.config for URL lifetimes, timeouts and version policy.
"""
from __future__ import annotations

from app.core.config import settings


def get_delegated_url_ttl() -> int:
    return settings.delegated_url_ttl_seconds


def get_delegated_url_max_ttl() -> int:
    return settings.delegated_url_max_ttl_seconds


def get_ledger_timeout() -> float:
    return settings.ledger_timeout_seconds


def get_blob_store_timeout() -> float:
    return settings.blob_store_timeout_seconds


def get_allow_free_upgrades() -> bool:
    return settings.allow_free_upgrades


def get_pending_retry_after() -> int:
    return settings.pending_purchase_retry_after_seconds


def get_pending_purchase_window() -> int:
    return settings.pending_purchase_window_seconds
