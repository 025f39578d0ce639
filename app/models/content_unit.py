from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base


class ContentUnit(Base):
    __tablename__ = "content_units"
    __table_args__ = (UniqueConstraint("version_id", "order_index", name="uq_unit_order_per_version"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    course_id = Column(String, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    version_id = Column(String, ForeignKey("course_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)  # denormalized from CourseVersion for the evaluator
    title = Column(String, nullable=False)
    storage_key = Column(String, nullable=True)  # key in the blob store; NULL is a data-integrity gap
    duration_seconds = Column(Integer, nullable=False, default=0)
    free_preview = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    version = relationship("CourseVersion", back_populates="units")
