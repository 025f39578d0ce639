"""
FastAPI dependencies: caller identity, internal API key, wired access components.
"""
import secrets

from fastapi import Depends, Header, HTTPException, Request, status

from app.access.coordinator import AccessCoordinator
from app.access.issuer import DelegatedURLIssuer
from app.access.ledger import PurchaseLedger
from app.access.resolver import VersionResolver
from app.core.config import settings
from app.db.session import get_session_factory
from app.storage import get_blob_store


def get_current_user_id(request: Request) -> str | None:
    """User id forwarded by the gateway; None for anonymous visitors."""
    value = (request.headers.get(settings.user_id_header) or "").strip()
    return value or None


def _key_matches(provided: str | None) -> bool:
    expected = settings.admin_api_key
    if not expected or not provided:
        return False
    return secrets.compare_digest(provided, expected)


def is_privileged(x_admin_key: str | None = Header(None, alias="X-Admin-Key")) -> bool:
    return _key_matches(x_admin_key)


def require_admin_key(privileged: bool = Depends(is_privileged)) -> None:
    if not privileged:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key",
        )


def get_purchase_ledger() -> PurchaseLedger:
    return PurchaseLedger(get_session_factory())


def get_access_coordinator() -> AccessCoordinator:
    factory = get_session_factory()
    return AccessCoordinator(
        resolver=VersionResolver(factory),
        ledger=PurchaseLedger(factory),
        issuer=DelegatedURLIssuer(get_blob_store()),
    )
