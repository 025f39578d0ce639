"""
Purchase — checkout reference tracked until the payment notification confirms it.
event_id is unique: confirmations replayed by the payment provider hit the same row.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String

from app.db.base import Base


class PurchaseStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    event_id = Column(String, unique=True, nullable=False)
    user_id = Column(String, nullable=False, index=True)
    course_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default=PurchaseStatus.PENDING)  # pending / confirmed
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
