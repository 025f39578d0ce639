"""
CourseVersion — append-only snapshot of a course's content.
Lifecycle: draft -> published -> archived. Published rows are never edited (except archiving);
corrections create a new version with new ContentUnit rows.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base


class VersionStatus:
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CourseVersion(Base):
    __tablename__ = "course_versions"
    __table_args__ = (UniqueConstraint("course_id", "version_number", name="uq_course_version_number"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    course_id = Column(String, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=VersionStatus.DRAFT, index=True)  # draft / published / archived
    change_log = Column(Text, nullable=True)  # what changed in this version
    created_by = Column(String, nullable=False, default="admin")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    published_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    units = relationship(
        "ContentUnit",
        back_populates="version",
        order_by="ContentUnit.order_index",
        lazy="selectin",
    )
