"""
Access DTOs: ContentUnitView / EntitlementView (evaluator input), AccessPolicy,
AccessDecision, DelegatedURL, UnitAccess and AccessResult (coordinator output).
All frozen: decisions are derived, never persisted or mutated.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, model_validator


# ----- Closed enums -----


class LockReason(str, Enum):
    NONE = "NONE"
    NOT_PURCHASED = "NOT_PURCHASED"
    WRONG_VERSION = "WRONG_VERSION"
    PREVIEW_ONLY = "PREVIEW_ONLY"


class AccessStage(str, Enum):
    """Per-request orchestration states; FAILED is terminal and reachable from any other."""

    RESOLVING_VERSION = "RESOLVING_VERSION"
    CHECKING_ENTITLEMENT = "CHECKING_ENTITLEMENT"
    EVALUATING = "EVALUATING"
    ISSUING_URLS = "ISSUING_URLS"
    DONE = "DONE"
    FAILED = "FAILED"


UrlStatus = Literal[
    "issued",
    "not_requested",
    "no_key",
    "key_not_found",
    "upstream_unavailable",
    "timeout",
    "error",
]

EntitlementStatus = Literal["active", "none", "pending_confirmation", "anonymous"]


# ----- Evaluator input -----


class ContentUnitView(BaseModel):
    """Immutable snapshot of one ContentUnit row."""

    id: str
    course_id: str
    version_number: int
    order_index: int
    storage_key: str | None = None
    free_preview: bool = False
    title: str = ""
    duration_seconds: int = 0

    model_config = {"frozen": True}


class EntitlementView(BaseModel):
    user_id: str
    course_id: str
    bound_version: int | None = None
    # Per-entitlement version policy: True = bound_version does not restrict access.
    free_upgrades: bool = False
    granted_at: datetime | None = None
    revoked: bool = False

    model_config = {"frozen": True}


class AccessPolicy(BaseModel):
    """Request-level policy flags for evaluate()."""

    # Product-level override: any entitlement opens every version.
    allow_free_upgrades: bool = False
    # Anonymous visitor: there is no purchase to check, locked units report PREVIEW_ONLY.
    preview_only: bool = False

    model_config = {"frozen": True}


class ResolvedVersion(BaseModel):
    """Version visible to the caller, with its units in course order."""

    course_id: str
    version_number: int
    status: str
    units: tuple[ContentUnitView, ...]

    model_config = {"frozen": True}


VersionSelector = int | Literal["latest"]


# ----- Evaluator output -----


class AccessDecision(BaseModel):
    content_unit_id: str
    has_access: bool
    locked: bool
    lock_reason: LockReason
    is_free_preview: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_consistency(self) -> "AccessDecision":
        if self.has_access == self.locked:
            raise ValueError("has_access must equal not locked")
        if self.has_access and self.lock_reason is not LockReason.NONE:
            raise ValueError("accessible unit cannot carry a lock reason")
        if self.locked and self.lock_reason is LockReason.NONE:
            raise ValueError("locked unit needs a lock reason")
        return self


class DelegatedURL(BaseModel):
    content_unit_id: str
    url: str
    expires_at: datetime

    model_config = {"frozen": True}


# ----- Coordinator output -----


class UnitAccess(BaseModel):
    unit: ContentUnitView
    decision: AccessDecision
    delegated_url: DelegatedURL | None = None
    url_status: UrlStatus = Field(
        "not_requested",
        description="Outcome of URL issuance for this unit; only 'issued' carries a delegated_url",
    )

    model_config = {"frozen": True}


class AccessResult(BaseModel):
    course_id: str
    version_number: int
    entitlement_status: EntitlementStatus
    retry_after_seconds: int | None = Field(
        None,
        description="Set while a purchase awaits confirmation; the caller may retry after this delay",
    )
    units: list[UnitAccess]

    model_config = {"frozen": True}
