"""ConfirmedClass ORM model (source table ``trainingLog``)."""
import uuid
from sqlalchemy import Column, String, Text, Integer, Numeric, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class ConfirmedClass(Base):
    __tablename__ = "trainingLog"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subjects = Column(String(500), nullable=False)
    dateofclass = Column(Date, nullable=False)
    site_id = Column(String(36), ForeignKey("sites.id"), nullable=False)
    educator_id = Column(String(36), ForeignKey("educators.id"), nullable=True)
    coordinator_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    notes = Column(Text, nullable=True)
    source_request_id = Column(String(36), nullable=True, unique=True)

    # Billing
    billable = Column(Numeric(10, 2), nullable=True)
    hours = Column(Numeric(6, 2), nullable=True)
    expenses = Column(Numeric(10, 2), nullable=True)
    student_count = Column(Integer, nullable=True)
    billdate = Column(DateTime(timezone=True), nullable=True)

    review = Column(Text, nullable=True)

    locked_by_user_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_updated = Column(DateTime(timezone=True), server_default=func.now())

    site = relationship("Site")
    educator = relationship("Educator")
