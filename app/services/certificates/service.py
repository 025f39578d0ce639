"""
CertificateService — issue, verify and (only explicitly, with an audit entry) re-seal certificates.
A hash mismatch is a security event: logged at ERROR, audited, counted; never silently fixed.
"""
import logging
import secrets
import string
import time
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.certificates.fingerprint import fingerprint, record_fields, verify
from app.core.config import settings
from app.models.certificate import CertificateRecord
from app.schemas.certificates import CertificateOut, CertificateVerificationOut
from app.services.audit.service import AuditService
from app.utils.metrics import certificate_verifications_total

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def generate_certificate_id() -> str:
    """CERT-<ms timestamp base36>-<6 random base36 chars>, upper-cased."""
    stamp = _base36(int(time.time() * 1000))
    rand = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"CERT-{stamp}-{rand}".upper()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def completion_percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(min(completed, total) * 100 / total)


class CertificateService:
    def __init__(self, db: Session):
        self.db = db
        self.secret = settings.certificate_hash_secret

    def get(self, certificate_id: str) -> CertificateRecord | None:
        return (
            self.db.query(CertificateRecord)
            .filter(CertificateRecord.certificate_id == certificate_id)
            .one_or_none()
        )

    def get_for_student(self, student_id: str, course_id: str) -> CertificateRecord | None:
        return (
            self.db.query(CertificateRecord)
            .filter(CertificateRecord.student_id == student_id, CertificateRecord.course_id == course_id)
            .one_or_none()
        )

    def issue(
        self,
        student_id: str,
        course_id: str,
        student_name: str,
        course_title: str,
        instructor_name: str,
        completion_date: datetime,
        total_lessons: int,
        completed_lessons: int,
    ) -> CertificateRecord:
        """One certificate per (student, course); issuing again returns the existing one."""
        if completed_lessons > total_lessons:
            raise ValueError("completed_lessons cannot exceed total_lessons")
        existing = self.get_for_student(student_id, course_id)
        if existing:
            return existing

        record = CertificateRecord(
            certificate_id=generate_certificate_id(),
            student_id=student_id,
            course_id=course_id,
            student_name=student_name,
            course_title=course_title,
            instructor_name=instructor_name,
            completion_date=_as_utc(completion_date),
            date_issued=datetime.now(timezone.utc),
            total_lessons=total_lessons,
            completed_lessons=completed_lessons,
            completion_percentage=completion_percentage(completed_lessons, total_lessons),
            platform_name=settings.certificate_platform_name,
        )
        record.verification_hash = fingerprint(record_fields(record), self.secret)
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_for_student(student_id, course_id)
            if existing is None:
                raise
            return existing
        self.db.refresh(record)
        logger.info(
            "certificate_issued",
            extra={"certificate_id": record.certificate_id, "user_id": student_id, "course_id": course_id},
        )
        return record

    def verify_certificate(self, certificate_id: str) -> CertificateVerificationOut:
        verified_at = datetime.now(timezone.utc)
        record = self.get(certificate_id)
        if record is None:
            certificate_verifications_total.labels(result="not_found").inc()
            return CertificateVerificationOut(valid=False, certificate=None, verified_at=verified_at)

        valid = verify(record, self.secret)
        if not valid:
            certificate_verifications_total.labels(result="mismatch").inc()
            logger.error(
                "certificate_integrity_violation",
                extra={"certificate_id": certificate_id, "user_id": record.student_id, "course_id": record.course_id},
            )
            AuditService(self.db).log(
                actor_type="system",
                actor_id=None,
                action="certificate_integrity_violation",
                entity_type="certificate",
                entity_id=record.certificate_id,
                payload={"stored_hash": record.verification_hash},
            )
        else:
            certificate_verifications_total.labels(result="valid").inc()
        return CertificateVerificationOut(
            valid=valid,
            certificate=CertificateOut.model_validate(record),
            verified_at=verified_at,
        )

    def regenerate_hash(self, certificate_id: str, actor_id: str, reason: str) -> CertificateRecord:
        """Re-seal a record after a deliberate field correction. The only path that rewrites the hash."""
        record = self.get(certificate_id)
        if record is None:
            raise LookupError(f"certificate {certificate_id} not found")
        old_hash = record.verification_hash
        record.verification_hash = fingerprint(record_fields(record), self.secret)
        AuditService(self.db).log(
            actor_type="admin",
            actor_id=actor_id,
            action="certificate_hash_regenerated",
            entity_type="certificate",
            entity_id=record.certificate_id,
            payload={"old_hash": old_hash, "new_hash": record.verification_hash, "reason": reason},
            commit=False,
        )
        self.db.commit()
        self.db.refresh(record)
        logger.warning(
            "certificate_hash_regenerated",
            extra={"certificate_id": certificate_id, "user_id": actor_id},
        )
        return record
