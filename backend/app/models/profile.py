"""Staff/client/educator login profile — the acting identity for every operation."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from app.database import Base


class Role(str, enum.Enum):
    admin = "admin"
    lifesafe = "LifeSafe"
    educator = "educator"
    client_admin = "client_admin"
    client_site = "client_site"
    user = "user"


STAFF_ROLES = frozenset({Role.admin, Role.lifesafe})


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=False, unique=True)
    role = Column(
        SAEnum(Role, name="profile_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.user,
    )
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
