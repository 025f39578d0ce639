"""Tests for PurchaseLedger — idempotent confirmation, pending purchases, revocation."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.access.errors import StorageUnavailable
from app.access.ledger import PurchaseLedger
from app.core.config import settings
from app.models.audit_log import AuditLog
from app.models.entitlement import Entitlement
from app.models.purchase import Purchase, PurchaseStatus


def _active_rows(db, user_id="U", course_id="C"):
    return (
        db.query(Entitlement)
        .filter(Entitlement.user_id == user_id, Entitlement.course_id == course_id, Entitlement.revoked.is_(False))
        .all()
    )


class TestConfirmPurchase:
    def test_first_confirmation_grants(self, session_factory, db):
        ledger = PurchaseLedger(session_factory)
        view = ledger.confirm_purchase("evt-1", "U", "C")

        assert view.user_id == "U"
        assert view.revoked is False
        assert ledger.entitlement_for("U", "C") is not None
        assert db.query(AuditLog).filter(AuditLog.action == "entitlement_granted").count() == 1

    def test_replayed_event_is_idempotent(self, session_factory, db):
        ledger = PurchaseLedger(session_factory)
        ledger.confirm_purchase("evt-1", "U", "C")
        ledger.confirm_purchase("evt-1", "U", "C")

        assert len(_active_rows(db)) == 1
        assert db.query(Purchase).filter(Purchase.event_id == "evt-1").count() == 1

    def test_second_event_same_course_keeps_one_entitlement(self, session_factory, db):
        ledger = PurchaseLedger(session_factory)
        first = ledger.confirm_purchase("evt-1", "U", "C", bound_version=1)
        second = ledger.confirm_purchase("evt-2", "U", "C", bound_version=2)

        assert len(_active_rows(db)) == 1
        assert second.bound_version == first.bound_version == 1

    def test_concurrent_insert_converges(self, session_factory, db):
        """A writer that missed the winner's row collides on the partial index and retries."""
        PurchaseLedger(session_factory).confirm_purchase("evt-1", "U", "C")

        class BlindOnce(PurchaseLedger):
            blind = 1

            def _active(self, db, user_id, course_id, *, for_update=False):
                if self.blind:
                    self.blind -= 1
                    return None
                return super()._active(db, user_id, course_id, for_update=for_update)

        view = BlindOnce(session_factory).confirm_purchase("evt-2", "U", "C")

        assert view.user_id == "U"
        assert len(_active_rows(db)) == 1
        purchase = db.query(Purchase).filter(Purchase.event_id == "evt-2").one()
        assert purchase.status == PurchaseStatus.CONFIRMED

    def test_event_reused_for_other_user_rejected(self, session_factory):
        ledger = PurchaseLedger(session_factory)
        ledger.confirm_purchase("evt-1", "U", "C")
        with pytest.raises(ValueError):
            ledger.confirm_purchase("evt-1", "someone-else", "C")


class TestPending:
    def test_checkout_then_confirm(self, session_factory):
        ledger = PurchaseLedger(session_factory)
        assert ledger.record_checkout("evt-1", "U", "C") is True
        assert ledger.record_checkout("evt-1", "U", "C") is False
        assert ledger.has_pending_purchase("U", "C") is True
        assert ledger.entitlement_for("U", "C") is None

        ledger.confirm_purchase("evt-1", "U", "C")
        assert ledger.has_pending_purchase("U", "C") is False
        assert ledger.entitlement_for("U", "C") is not None

    def test_no_checkout_not_pending(self, session_factory):
        assert PurchaseLedger(session_factory).has_pending_purchase("U", "C") is False

    def test_abandoned_checkout_not_pending(self, session_factory, db):
        ledger = PurchaseLedger(session_factory)
        ledger.record_checkout("evt-1", "U", "C")
        purchase = db.query(Purchase).filter(Purchase.event_id == "evt-1").one()
        purchase.created_at = datetime.now(timezone.utc) - timedelta(days=90)
        db.commit()

        assert ledger.has_pending_purchase("U", "C") is False

    def test_checkout_inside_window_pending(self, session_factory, db):
        ledger = PurchaseLedger(session_factory)
        ledger.record_checkout("evt-1", "U", "C")
        purchase = db.query(Purchase).filter(Purchase.event_id == "evt-1").one()
        purchase.created_at = datetime.now(timezone.utc) - timedelta(seconds=settings.pending_purchase_window_seconds - 60)
        db.commit()

        assert ledger.has_pending_purchase("U", "C") is True


class TestRevoke:
    def test_revoke_then_regrant(self, session_factory, db):
        ledger = PurchaseLedger(session_factory)
        ledger.confirm_purchase("evt-1", "U", "C")

        assert ledger.revoke("U", "C", "refund", actor_id="admin-1") is True
        assert ledger.entitlement_for("U", "C") is None
        assert ledger.revoke("U", "C", "refund") is False

        ledger.confirm_purchase("evt-2", "U", "C")
        assert ledger.entitlement_for("U", "C") is not None
        # revoked rows stay for history
        assert db.query(Entitlement).filter(Entitlement.user_id == "U").count() == 2
        assert db.query(AuditLog).filter(AuditLog.action == "entitlement_revoked").count() == 1

    def test_other_user_unaffected(self, session_factory):
        ledger = PurchaseLedger(session_factory)
        ledger.confirm_purchase("evt-1", "U", "C")
        ledger.confirm_purchase("evt-2", "W", "C")
        ledger.revoke("U", "C", "chargeback")
        assert ledger.entitlement_for("W", "C") is not None


class TestStorageFailure:
    @staticmethod
    def _broken_factory():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def test_read_failure_is_not_a_deny(self):
        ledger = PurchaseLedger(self._broken_factory)
        with pytest.raises(StorageUnavailable):
            ledger.entitlement_for("U", "C")
        with pytest.raises(StorageUnavailable):
            ledger.has_pending_purchase("U", "C")

    def test_write_failure(self):
        ledger = PurchaseLedger(self._broken_factory)
        with pytest.raises(StorageUnavailable):
            ledger.confirm_purchase("evt-1", "U", "C")
