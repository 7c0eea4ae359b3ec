"""LifecycleEvent ORM model — append-only ledger of every lifecycle and billing write."""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Boolean, JSON
from app.database import Base


class LifecycleEvent(Base):
    __tablename__ = "lifecycle_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # No foreign keys: the request row is deleted on promotion/removal, the ledger outlives it
    request_id = Column(String(36), nullable=True, index=True)
    confirmed_class_id = Column(String(36), nullable=True, index=True)
    actor_id = Column(String(36), nullable=False)
    action = Column(String(40), nullable=False)
    from_status = Column(String(40), nullable=True)
    to_status = Column(String(40), nullable=True)
    before_snapshot = Column(JSON, nullable=True)
    after_snapshot = Column(JSON, nullable=True)
    notice_sent = Column(Boolean, nullable=True)
    notice_error = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
