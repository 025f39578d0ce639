"""
Entitlement — durable record that a user may access a course.
Append-only: rows are never deleted, only marked revoked.
At most one non-revoked row per (user_id, course_id): partial unique index below.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, false

from app.db.base import Base


class Entitlement(Base):
    __tablename__ = "entitlements"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    course_id = Column(String, nullable=False, index=True)
    bound_version = Column(Integer, nullable=True)  # NULL = not tied to a version
    free_upgrades = Column(Boolean, nullable=False, default=False)  # True = bound_version does not restrict
    source_event_id = Column(String, nullable=True)  # purchase confirmation that created the row
    granted_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    revoked = Column(Boolean, nullable=False, default=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoke_reason = Column(String, nullable=True)


Index(
    "uq_entitlement_active_user_course",
    Entitlement.user_id,
    Entitlement.course_id,
    unique=True,
    postgresql_where=Entitlement.revoked == false(),
    sqlite_where=Entitlement.revoked == false(),
)
