"""
Decision only: evaluate(units, entitlement, policy) -> list[AccessDecision].
Pure function, no I/O. One rule table for every caller (course listing and single unit).
"""
from __future__ import annotations

from typing import Iterable

from app.access.models import (
    AccessDecision,
    AccessPolicy,
    ContentUnitView,
    EntitlementView,
    LockReason,
)

_DEFAULT_POLICY = AccessPolicy()


def evaluate_unit(
    unit: ContentUnitView,
    entitlement: EntitlementView | None,
    policy: AccessPolicy = _DEFAULT_POLICY,
) -> AccessDecision:
    """
    Rules, in priority order:
    1. free preview -> open, whatever the entitlement state
    2. no (active) entitlement -> NOT_PURCHASED (PREVIEW_ONLY for anonymous visitors)
    3. entitlement bound to another version, upgrades not allowed -> WRONG_VERSION
    4. otherwise -> open
    """
    if unit.free_preview:
        return _open(unit, is_free_preview=True)

    if entitlement is None or entitlement.revoked:
        reason = LockReason.PREVIEW_ONLY if policy.preview_only else LockReason.NOT_PURCHASED
        return _locked(unit, reason)

    upgrades_allowed = entitlement.free_upgrades or policy.allow_free_upgrades
    if (
        entitlement.bound_version is not None
        and entitlement.bound_version != unit.version_number
        and not upgrades_allowed
    ):
        return _locked(unit, LockReason.WRONG_VERSION)

    return _open(unit, is_free_preview=False)


def evaluate(
    units: Iterable[ContentUnitView],
    entitlement: EntitlementView | None,
    policy: AccessPolicy = _DEFAULT_POLICY,
) -> list[AccessDecision]:
    """Order-preserving map of evaluate_unit over units."""
    return [evaluate_unit(unit, entitlement, policy) for unit in units]


def _open(unit: ContentUnitView, *, is_free_preview: bool) -> AccessDecision:
    return AccessDecision(
        content_unit_id=unit.id,
        has_access=True,
        locked=False,
        lock_reason=LockReason.NONE,
        is_free_preview=is_free_preview,
    )


def _locked(unit: ContentUnitView, reason: LockReason) -> AccessDecision:
    return AccessDecision(
        content_unit_id=unit.id,
        has_access=False,
        locked=True,
        lock_reason=reason,
        is_free_preview=False,
    )
