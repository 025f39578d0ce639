from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import require_admin_key
from app.db.session import get_db
from app.schemas.certificates import (
    CertificateIssueIn,
    CertificateOut,
    CertificateVerificationOut,
    RegenerateHashIn,
)
from app.services.certificates.service import CertificateService


router = APIRouter(prefix="/certificates", tags=["certificates"])


@router.get("/{certificate_id}/verify", response_model=CertificateVerificationOut)
def verify_certificate(certificate_id: str, db: Session = Depends(get_db)) -> CertificateVerificationOut:
    """Public verification: valid=false for unknown ids and for records altered after issuance."""
    return CertificateService(db).verify_certificate(certificate_id)


@router.post("", response_model=CertificateOut, dependencies=[Depends(require_admin_key)])
def issue_certificate(body: CertificateIssueIn = Body(...), db: Session = Depends(get_db)) -> CertificateOut:
    try:
        record = CertificateService(db).issue(**body.model_dump())
    except ValueError as e:
        raise HTTPException(422, str(e))
    return CertificateOut.model_validate(record)


@router.post(
    "/{certificate_id}/regenerate-hash",
    response_model=CertificateOut,
    dependencies=[Depends(require_admin_key)],
)
def regenerate_hash(certificate_id: str, body: RegenerateHashIn, db: Session = Depends(get_db)) -> CertificateOut:
    try:
        record = CertificateService(db).regenerate_hash(certificate_id, body.actor_id, body.reason)
    except LookupError:
        raise HTTPException(404, "Certificate not found")
    return CertificateOut.model_validate(record)
