"""
CertificateRecord — issued once on course completion.
verification_hash covers the fields listed in app.certificates.fingerprint.CERTIFICATE_FIELDS;
editing any of them without an audited regeneration makes verification fail.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from app.db.base import Base


class CertificateRecord(Base):
    __tablename__ = "certificates"
    __table_args__ = (UniqueConstraint("student_id", "course_id", name="uq_certificate_student_course"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    certificate_id = Column(String, unique=True, nullable=False, index=True)  # public id, CERT-...
    student_id = Column(String, nullable=False, index=True)
    course_id = Column(String, nullable=False, index=True)
    student_name = Column(String, nullable=False)
    course_title = Column(String, nullable=False)
    instructor_name = Column(String, nullable=False)
    completion_date = Column(DateTime(timezone=True), nullable=False)
    date_issued = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    total_lessons = Column(Integer, nullable=False)
    completed_lessons = Column(Integer, nullable=False)
    completion_percentage = Column(Integer, nullable=False)
    platform_name = Column(String, nullable=False)
    verification_hash = Column(String, nullable=False)
