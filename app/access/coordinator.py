"""
AccessCoordinator — the single entry point for "what can this user watch in this course".

RESOLVING_VERSION and CHECKING_ENTITLEMENT run concurrently (blocking DB reads in worker threads,
each with its own session and timeout), EVALUATING joins both, ISSUING_URLS fans out one task
per accessible unit. The request FAILS only on NotFound / NotPublished / a transient error on the
required path; URL issuance failures stay per unit.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

from app.access.config import (
    get_allow_free_upgrades,
    get_blob_store_timeout,
    get_ledger_timeout,
    get_pending_retry_after,
)
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
    AccessPolicy,
    AccessResult,
    AccessStage,
    ContentUnitView,
    DelegatedURL,
    EntitlementStatus,
    EntitlementView,
    UnitAccess,
    UrlStatus,
    VersionSelector,
)
from app.access.resolver import LATEST, VersionResolver
from app.utils.metrics import (
    access_decisions_total,
    access_request_duration_seconds,
    access_requests_total,
    delegated_urls_total,
)

logger = logging.getLogger(__name__)


class AccessCoordinator:
    def __init__(
        self,
        resolver: VersionResolver,
        ledger: PurchaseLedger,
        issuer: DelegatedURLIssuer,
        *,
        allow_free_upgrades: bool | None = None,
        ledger_timeout: float | None = None,
        issue_timeout: float | None = None,
    ) -> None:
        self.resolver = resolver
        self.ledger = ledger
        self.issuer = issuer
        self.allow_free_upgrades = get_allow_free_upgrades() if allow_free_upgrades is None else allow_free_upgrades
        self.ledger_timeout = ledger_timeout if ledger_timeout is not None else get_ledger_timeout()
        self.issue_timeout = issue_timeout if issue_timeout is not None else get_blob_store_timeout()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def get_accessible_content(
        self,
        user_id: str | None,
        course_id: str,
        selector: VersionSelector = LATEST,
        *,
        privileged: bool = False,
    ) -> AccessResult:
        started = time.monotonic()
        try:
            result = await self._get_accessible_content(user_id, course_id, selector, privileged)
        except AccessRequestFailed as e:
            access_requests_total.labels(outcome=_outcome(e.cause)).inc()
            logger.warning(
                "access_request_failed",
                extra={
                    "user_id": user_id,
                    "course_id": course_id,
                    "stage": e.stage.value,
                    "error": str(e.cause),
                },
            )
            raise
        finally:
            access_request_duration_seconds.observe(time.monotonic() - started)

        access_requests_total.labels(outcome="done").inc()
        logger.info(
            "access_request_done",
            extra={
                "user_id": user_id,
                "course_id": course_id,
                "version_number": result.version_number,
                "units_total": len(result.units),
                "units_accessible": sum(1 for u in result.units if u.decision.has_access),
            },
        )
        return result

    async def get_unit_access(
        self,
        user_id: str | None,
        unit_id: str,
        *,
        privileged: bool = False,
    ) -> UnitAccess:
        """Same rule table and issuance path for a single unit."""
        unit: ContentUnitView = await self._blocking(
            AccessStage.RESOLVING_VERSION,
            self.resolver.resolve_unit,
            unit_id,
            privileged=privileged,
        )
        entitlement, _ = await self._check_entitlement(user_id, unit.course_id)
        decision = evaluate_unit(unit, entitlement, self._policy(user_id))
        access_decisions_total.labels(lock_reason=decision.lock_reason.value).inc()
        if not decision.has_access:
            return UnitAccess(unit=unit, decision=decision)
        delegated_url, status = await self._issue_one(unit)
        return UnitAccess(unit=unit, decision=decision, delegated_url=delegated_url, url_status=status)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _get_accessible_content(
        self,
        user_id: str | None,
        course_id: str,
        selector: VersionSelector,
        privileged: bool,
    ) -> AccessResult:
        version_res, ledger_res = await asyncio.gather(
            self._blocking(
                AccessStage.RESOLVING_VERSION,
                self.resolver.resolve,
                course_id,
                selector,
                privileged=privileged,
            ),
            self._check_entitlement(user_id, course_id),
            return_exceptions=True,
        )
        # Resolver failure wins: NotFound is more useful to the caller than a ledger timeout.
        for res in (version_res, ledger_res):
            if isinstance(res, BaseException):
                raise res
        version = version_res
        entitlement, pending = ledger_res

        # EVALUATING
        decisions = evaluate(version.units, entitlement, self._policy(user_id))
        for decision in decisions:
            access_decisions_total.labels(lock_reason=decision.lock_reason.value).inc()

        # ISSUING_URLS
        outcomes = await asyncio.gather(
            *(
                self._issue_one(unit) if decision.has_access else _not_requested()
                for unit, decision in zip(version.units, decisions)
            )
        )

        units = [
            UnitAccess(unit=unit, decision=decision, delegated_url=url, url_status=status)
            for unit, decision, (url, status) in zip(version.units, decisions, outcomes)
        ]
        status = _entitlement_status(user_id, entitlement, pending)
        return AccessResult(
            course_id=course_id,
            version_number=version.version_number,
            entitlement_status=status,
            retry_after_seconds=get_pending_retry_after() if status == "pending_confirmation" else None,
            units=units,
        )

    async def _check_entitlement(
        self,
        user_id: str | None,
        course_id: str,
    ) -> tuple[EntitlementView | None, bool]:
        """(entitlement, purchase_pending). Anonymous callers have nothing to look up."""
        if user_id is None:
            return None, False
        return await self._blocking(AccessStage.CHECKING_ENTITLEMENT, self._ledger_lookup, user_id, course_id)

    def _ledger_lookup(self, user_id: str, course_id: str) -> tuple[EntitlementView | None, bool]:
        entitlement = self.ledger.entitlement_for(user_id, course_id)
        if entitlement is not None:
            return entitlement, False
        return None, self.ledger.has_pending_purchase(user_id, course_id)

    async def _issue_one(self, unit: ContentUnitView) -> tuple[DelegatedURL | None, UrlStatus]:
        status: UrlStatus
        try:
            delegated = await asyncio.wait_for(
                asyncio.to_thread(self.issuer.issue, unit.id, unit.storage_key),
                timeout=self.issue_timeout,
            )
        except NoStorageKey:
            status = "no_key"
        except StorageKeyNotFound:
            status = "key_not_found"
        except UpstreamUnavailable:
            status = "upstream_unavailable"
        except asyncio.TimeoutError:
            logger.warning("delegated_url_timeout", extra={"unit_id": unit.id})
            status = "timeout"
        except Exception as e:
            logger.error(
                "delegated_url_failed",
                extra={"unit_id": unit.id, "error": f"{type(e).__name__}: {e}"},
                exc_info=True,
            )
            status = "error"
        else:
            delegated_urls_total.labels(status="issued").inc()
            return delegated, "issued"
        delegated_urls_total.labels(status=status).inc()
        return None, status

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _policy(self, user_id: str | None) -> AccessPolicy:
        return AccessPolicy(
            allow_free_upgrades=self.allow_free_upgrades,
            preview_only=user_id is None,
        )

    async def _blocking(self, stage: AccessStage, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a blocking read in a worker thread, bounded by the ledger timeout; fail closed."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs),
                timeout=self.ledger_timeout,
            )
        except asyncio.TimeoutError as e:
            raise AccessRequestFailed(stage, StorageUnavailable(f"{stage.value} timed out")) from e
        except AccessError as e:
            raise AccessRequestFailed(stage, e) from e


async def _not_requested() -> tuple[None, UrlStatus]:
    return None, "not_requested"


def _entitlement_status(
    user_id: str | None,
    entitlement: EntitlementView | None,
    pending: bool,
) -> EntitlementStatus:
    if user_id is None:
        return "anonymous"
    if entitlement is not None:
        return "active"
    if pending:
        return "pending_confirmation"
    return "none"


def _outcome(cause: AccessError) -> str:
    if isinstance(cause, NotPublished):
        return "not_published"
    if isinstance(cause, NotFound):
        return "not_found"
    return "unavailable"
