"""Acting identity and the role → capability table.

Every lifecycle and billing operation receives the acting ``Actor``
explicitly and checks it here before touching any row.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import AuthorizationError
from app.models.educator import Educator
from app.models.profile import Profile, Role, STAFF_ROLES


class Action(str, enum.Enum):
    create_request = "create_request"
    edit_request = "edit_request"
    assign_educator = "assign_educator"
    contact_educator = "contact_educator"
    record_date = "record_date"
    accept = "accept"
    decline = "decline"
    promote = "promote"
    remove = "remove"
    release_lock = "release_lock"
    edit_billing = "edit_billing"
    bill = "bill"
    roster_reminder = "roster_reminder"
    class_reminder = "class_reminder"
    review = "review"


# Actions an educator performs on a request offered to them
EDUCATOR_FACING = frozenset({Action.accept, Action.decline, Action.record_date})

_STAFF = frozenset(Action)
_CLIENT = frozenset({Action.create_request, Action.remove, Action.review, Action.release_lock})

ROLE_CAPABILITIES: dict[Role, frozenset[Action]] = {
    Role.admin: _STAFF,
    Role.lifesafe: _STAFF,
    Role.educator: EDUCATOR_FACING | {Action.release_lock},
    Role.client_admin: _CLIENT,
    Role.client_site: _CLIENT,
    Role.user: frozenset({Action.create_request, Action.remove}),
}


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role
    email: Optional[str] = None
    company_id: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @classmethod
    def from_profile(cls, profile: Profile) -> "Actor":
        return cls(id=profile.id, role=Role(profile.role), email=profile.email, company_id=profile.company_id)


def can(actor: Actor, action: Action) -> bool:
    return action in ROLE_CAPABILITIES.get(actor.role, frozenset())


def require(actor: Optional[Actor], action: Action) -> Actor:
    """Raise AuthorizationError unless the actor's role grants ``action``."""
    if actor is None:
        raise AuthorizationError("Authentication required")
    if not can(actor, action):
        raise AuthorizationError(f"Role '{actor.role.value}' may not {action.value.replace('_', ' ')}")
    return actor


def educator_for(db: Session, actor: Actor) -> Optional[Educator]:
    """Resolve the Educator row behind an educator login (matched on email)."""
    if not actor.email:
        return None
    return db.query(Educator).filter(Educator.email1 == actor.email).first()


def require_same_company(actor: Actor, company_id: Optional[str]) -> None:
    """Non-staff actors may only act on rows belonging to their own organization."""
    if actor.is_staff:
        return
    if actor.company_id is None:
        raise AuthorizationError("Your profile is not linked to an organization")
    if company_id != actor.company_id:
        raise AuthorizationError("That record belongs to another organization")
