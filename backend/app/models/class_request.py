"""ClassRequest ORM model (source table ``pending_class``)."""
import uuid
import enum
from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base
from app.services.catalog import parse_class_types


class ClassRequestStatus(str, enum.Enum):
    pending = "pending"
    pending_review = "Pending Review"
    confirm_educator_dates = "Confirm Educator Dates"
    awaiting_date = "Awaiting Date"
    accepted = "accepted"
    final_confirmation = "Final Confirmation"


INITIAL_STATUSES = frozenset({ClassRequestStatus.pending, ClassRequestStatus.pending_review})


class ClassRequest(Base):
    __tablename__ = "pending_class"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_type = Column(String(500), nullable=False)  # comma-joined catalog names
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=True)
    site_id = Column(String(36), ForeignKey("sites.id"), nullable=True)
    educator_id = Column(String(36), ForeignKey("educators.id"), nullable=True)
    coordinator_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    queue_user_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    preferred_date_start = Column(Date, nullable=False)
    preferred_date_end = Column(Date, nullable=False)
    class_date = Column(Date, nullable=True)
    status = Column(
        SAEnum(ClassRequestStatus, name="class_request_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ClassRequestStatus.pending,
    )
    notes = Column(Text, nullable=True)
    offer_sent_at = Column(DateTime(timezone=True), nullable=True)
    educator_response_at = Column(DateTime(timezone=True), nullable=True)
    locked_by_user_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_updated = Column(DateTime(timezone=True), server_default=func.now())

    site = relationship("Site")
    educator = relationship("Educator")

    @property
    def class_types(self) -> list[str]:
        return parse_class_types(self.class_type)
