"""
Course content access engine (internal library).
Decision (evaluate) and execution (DelegatedURLIssuer) are separate; AccessCoordinator joins them.
"""
from app.access.coordinator import AccessCoordinator
from app.access.errors import (
    AccessError,
    AccessRequestFailed,
    NoStorageKey,
    NotFound,
    NotPublished,
    StorageKeyNotFound,
    StorageUnavailable,
    UpstreamUnavailable,
)
from app.access.evaluator import evaluate, evaluate_unit
from app.access.issuer import DelegatedURLIssuer
from app.access.ledger import PurchaseLedger
from app.access.models import (
    AccessDecision,
    AccessPolicy,
    AccessResult,
    AccessStage,
    ContentUnitView,
    DelegatedURL,
    EntitlementView,
    LockReason,
    ResolvedVersion,
    UnitAccess,
)
from app.access.resolver import VersionResolver, parse_version_selector

__all__ = [
    "AccessCoordinator",
    "AccessDecision",
    "AccessError",
    "AccessPolicy",
    "AccessRequestFailed",
    "AccessResult",
    "AccessStage",
    "ContentUnitView",
    "DelegatedURL",
    "DelegatedURLIssuer",
    "EntitlementView",
    "LockReason",
    "NoStorageKey",
    "NotFound",
    "NotPublished",
    "PurchaseLedger",
    "ResolvedVersion",
    "StorageKeyNotFound",
    "StorageUnavailable",
    "UnitAccess",
    "UpstreamUnavailable",
    "VersionResolver",
    "evaluate",
    "evaluate_unit",
    "parse_version_selector",
]
