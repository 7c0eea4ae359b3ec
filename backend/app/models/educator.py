"""Educator (instructor) ORM model."""
import uuid
from sqlalchemy import Column, String, DateTime, Numeric
from sqlalchemy.sql import func
from app.database import Base


class Educator(Base):
    __tablename__ = "educators"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    first = Column(String(100), nullable=False)
    last = Column(String(100), nullable=False)
    email1 = Column(String(255), nullable=True, index=True)  # links to profiles.email
    email2 = Column(String(255), nullable=True)
    cell = Column(String(30), nullable=True)
    teach_state = Column(String(50), nullable=True)
    rate1 = Column(Numeric(10, 2), nullable=True)  # hourly
    rate2 = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first} {self.last}"
