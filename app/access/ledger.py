"""
PurchaseLedger — entitlements and the purchases that create them.

Responsibilities:
- entitlement_for: the single active entitlement (read-your-writes: fresh session per call)
- record_checkout / has_pending_purchase: purchases still waiting for the payment notification
- confirm_purchase: idempotent grant (unique event_id + partial unique index on active rows)
- revoke: append-only revocation

Storage failures raise StorageUnavailable; they are never reported as "no entitlement".
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.access.config import get_pending_purchase_window
from app.access.errors import StorageUnavailable
from app.access.models import EntitlementView
from app.models.entitlement import Entitlement
from app.models.purchase import Purchase, PurchaseStatus
from app.services.audit.service import AuditService
from app.utils.metrics import purchase_confirmations_total

logger = logging.getLogger(__name__)

# Two writers racing on the same (user, course) or event_id: the loser retries once and finds the winner.
CONFIRM_ATTEMPTS = 2


def entitlement_view(row: Entitlement) -> EntitlementView:
    return EntitlementView(
        user_id=row.user_id,
        course_id=row.course_id,
        bound_version=row.bound_version,
        free_upgrades=bool(row.free_upgrades),
        granted_at=row.granted_at,
        revoked=bool(row.revoked),
    )


class PurchaseLedger:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def entitlement_for(self, user_id: str, course_id: str) -> EntitlementView | None:
        try:
            with self._session_factory() as db:
                row = self._active(db, user_id, course_id)
                return entitlement_view(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.warning(
                "ledger_storage_error",
                extra={"user_id": user_id, "course_id": course_id, "error": type(e).__name__},
            )
            raise StorageUnavailable(f"entitlement read failed for user {user_id}") from e

    def has_pending_purchase(self, user_id: str, course_id: str) -> bool:
        """True while a recent checkout is recorded but its confirmation has not been applied."""
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=get_pending_purchase_window())
        try:
            with self._session_factory() as db:
                pending = (
                    db.query(Purchase.id)
                    .filter(
                        Purchase.user_id == user_id,
                        Purchase.course_id == course_id,
                        Purchase.status == PurchaseStatus.PENDING,
                        Purchase.created_at >= cutoff,
                    )
                    .first()
                )
                if pending is None:
                    return False
                return self._active(db, user_id, course_id) is None
        except SQLAlchemyError as e:
            logger.warning(
                "ledger_storage_error",
                extra={"user_id": user_id, "course_id": course_id, "error": type(e).__name__},
            )
            raise StorageUnavailable(f"purchase read failed for user {user_id}") from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_checkout(self, event_id: str, user_id: str, course_id: str) -> bool:
        """Record a pending purchase. Returns False if the event was already known."""
        try:
            with self._session_factory() as db:
                existing = db.query(Purchase.id).filter(Purchase.event_id == event_id).first()
                if existing:
                    return False
                db.add(
                    Purchase(
                        event_id=event_id,
                        user_id=user_id,
                        course_id=course_id,
                        status=PurchaseStatus.PENDING,
                    )
                )
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    return False
                logger.info(
                    "checkout_recorded",
                    extra={"event_id": event_id, "user_id": user_id, "course_id": course_id},
                )
                return True
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"checkout write failed for event {event_id}") from e

    def confirm_purchase(
        self,
        event_id: str,
        user_id: str,
        course_id: str,
        *,
        bound_version: int | None = None,
        free_upgrades: bool = False,
    ) -> EntitlementView:
        """
        Apply a verified payment confirmation. Replays and concurrent duplicates
        converge on one active entitlement.
        """
        last_error: IntegrityError | None = None
        for _ in range(CONFIRM_ATTEMPTS):
            try:
                with self._session_factory() as db:
                    try:
                        view, created = self._confirm_once(
                            db, event_id, user_id, course_id, bound_version, free_upgrades
                        )
                    except IntegrityError as e:
                        db.rollback()
                        last_error = e
                        logger.warning(
                            "purchase_confirmation_race",
                            extra={"event_id": event_id, "user_id": user_id, "course_id": course_id},
                        )
                        continue
            except SQLAlchemyError as e:
                raise StorageUnavailable(f"purchase confirmation failed for event {event_id}") from e

            purchase_confirmations_total.labels(result="created" if created else "duplicate").inc()
            logger.info(
                "purchase_confirmed" if created else "purchase_confirmation_duplicate",
                extra={"event_id": event_id, "user_id": user_id, "course_id": course_id},
            )
            return view

        raise StorageUnavailable(f"purchase confirmation kept conflicting for event {event_id}") from last_error

    def revoke(self, user_id: str, course_id: str, reason: str, actor_id: str | None = None) -> bool:
        """Mark the active entitlement revoked. Returns False if there is none."""
        try:
            with self._session_factory() as db:
                row = self._active(db, user_id, course_id, for_update=True)
                if row is None:
                    return False
                row.revoked = True
                row.revoked_at = datetime.now(timezone.utc)
                row.revoke_reason = reason
                AuditService(db).log(
                    actor_type="admin" if actor_id else "system",
                    actor_id=actor_id,
                    action="entitlement_revoked",
                    entity_type="entitlement",
                    entity_id=row.id,
                    payload={"user_id": user_id, "course_id": course_id, "reason": reason},
                    commit=False,
                )
                db.commit()
                logger.info("entitlement_revoked", extra={"user_id": user_id, "course_id": course_id})
                return True
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"revocation failed for user {user_id}") from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _active(
        self,
        db: Session,
        user_id: str,
        course_id: str,
        *,
        for_update: bool = False,
    ) -> Entitlement | None:
        q = db.query(Entitlement).filter(
            Entitlement.user_id == user_id,
            Entitlement.course_id == course_id,
            Entitlement.revoked.is_(False),
        )
        if for_update:
            q = q.with_for_update()
        return q.one_or_none()

    def _confirm_once(
        self,
        db: Session,
        event_id: str,
        user_id: str,
        course_id: str,
        bound_version: int | None,
        free_upgrades: bool,
    ) -> tuple[EntitlementView, bool]:
        now = datetime.now(timezone.utc)
        purchase = db.query(Purchase).filter(Purchase.event_id == event_id).one_or_none()
        if purchase is None:
            # Confirmation arrived before (or without) the checkout record.
            purchase = Purchase(event_id=event_id, user_id=user_id, course_id=course_id)
            db.add(purchase)
        elif purchase.user_id != user_id or purchase.course_id != course_id:
            raise ValueError(f"event {event_id} belongs to another user or course")

        created = False
        entitlement = self._active(db, user_id, course_id)
        if entitlement is None:
            entitlement = Entitlement(
                user_id=user_id,
                course_id=course_id,
                bound_version=bound_version,
                free_upgrades=free_upgrades,
                source_event_id=event_id,
                granted_at=now,
            )
            db.add(entitlement)
            created = True

        if purchase.status != PurchaseStatus.CONFIRMED:
            purchase.status = PurchaseStatus.CONFIRMED
            purchase.confirmed_at = now

        db.flush()
        if created:
            AuditService(db).log(
                actor_type="system",
                actor_id=None,
                action="entitlement_granted",
                entity_type="entitlement",
                entity_id=entitlement.id,
                payload={
                    "user_id": user_id,
                    "course_id": course_id,
                    "event_id": event_id,
                    "bound_version": bound_version,
                    "free_upgrades": free_upgrades,
                },
                commit=False,
            )
        db.commit()
        return entitlement_view(entitlement), created
