"""
Internal purchase endpoints, called by the payment webhook handler (signature already verified there).
Protected by X-Admin-Key.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from app.access.errors import StorageUnavailable
from app.access.ledger import PurchaseLedger
from app.access.models import EntitlementView
from app.api.deps import get_purchase_ledger, require_admin_key
from app.schemas.purchases import CheckoutIn, CheckoutOut, ConfirmPurchaseIn, RevokeIn, RevokeOut


router = APIRouter(prefix="/purchases", tags=["purchases"], dependencies=[Depends(require_admin_key)])


def _unavailable(e: StorageUnavailable) -> HTTPException:
    return HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, str(e), headers={"Retry-After": "2"})


@router.post("/checkout", response_model=CheckoutOut)
def record_checkout(body: CheckoutIn, ledger: PurchaseLedger = Depends(get_purchase_ledger)) -> CheckoutOut:
    try:
        recorded = ledger.record_checkout(body.event_id, body.user_id, body.course_id)
    except StorageUnavailable as e:
        raise _unavailable(e)
    return CheckoutOut(event_id=body.event_id, recorded=recorded)


@router.post("/confirm", response_model=EntitlementView)
def confirm_purchase(body: ConfirmPurchaseIn, ledger: PurchaseLedger = Depends(get_purchase_ledger)) -> EntitlementView:
    try:
        return ledger.confirm_purchase(
            body.event_id,
            body.user_id,
            body.course_id,
            bound_version=body.bound_version,
            free_upgrades=body.free_upgrades,
        )
    except ValueError as e:
        raise HTTPException(status.HTTP_409_CONFLICT, str(e))
    except StorageUnavailable as e:
        raise _unavailable(e)


@router.post("/revoke", response_model=RevokeOut)
def revoke_entitlement(body: RevokeIn, ledger: PurchaseLedger = Depends(get_purchase_ledger)) -> RevokeOut:
    try:
        revoked = ledger.revoke(body.user_id, body.course_id, body.reason, actor_id=body.actor_id)
    except StorageUnavailable as e:
        raise _unavailable(e)
    return RevokeOut(revoked=revoked)
