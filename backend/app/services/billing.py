"""Billing workflow for confirmed classes.

A confirmed class whose date has passed and that has no bill date is
"pending bill". Billing fields stay editable until the class is billed;
billing is one-way.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

import pytz
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import NotFoundError, ValidationError
from app.models.confirmed_class import ConfirmedClass
from app.models.educator import Educator
from app.models.lifecycle_event import LifecycleEvent
from app.models.organization import Site
from app.services import notifications
from app.services.authz import Action, Actor, require, require_same_company
from app.services.store import guarded_update, unit_of_work

logger = logging.getLogger(__name__)

BILLING_FIELDS = ("student_count", "billable", "hours", "expenses")


def business_today() -> date:
    """Today's date in the business timezone (not the server's)."""
    return datetime.now(pytz.timezone(settings.BUSINESS_TIMEZONE)).date()


def class_snapshot(cc: ConfirmedClass) -> dict[str, Any]:
    """Serialize a confirmed class to a JSON-safe dict for the ledger."""
    def num(value):
        return str(value) if value is not None else None

    return {
        "id": cc.id,
        "subjects": cc.subjects,
        "dateofclass": cc.dateofclass.isoformat() if cc.dateofclass else None,
        "site_id": cc.site_id,
        "educator_id": cc.educator_id,
        "student_count": cc.student_count,
        "billable": num(cc.billable),
        "hours": num(cc.hours),
        "expenses": num(cc.expenses),
        "billdate": cc.billdate.isoformat() if cc.billdate else None,
        "review": cc.review,
    }


def _load(db: Session, class_id: str) -> ConfirmedClass:
    cc = db.query(ConfirmedClass).filter(ConfirmedClass.id == class_id).first()
    if not cc:
        raise NotFoundError("Confirmed class not found")
    return cc


def _ledger(db: Session, actor: Actor, action: Action, cc_id: str, before, after) -> LifecycleEvent:
    entry = LifecycleEvent(
        confirmed_class_id=cc_id,
        actor_id=actor.id,
        action=action.value,
        before_snapshot=before,
        after_snapshot=after,
    )
    db.add(entry)
    return entry


def _has_taken_place(cc: ConfirmedClass, today: Optional[date] = None) -> bool:
    """A class counts as past from the day after it is held, for billing and pending bills alike."""
    return cc.dateofclass < (today or business_today())


def _ensure_open(cc: ConfirmedClass) -> None:
    if cc.billdate is not None:
        raise ValidationError(f"Class {cc.id} was billed on {cc.billdate:%Y-%m-%d} and is closed for billing edits", field="billdate")


def get_class(db: Session, class_id: str) -> ConfirmedClass:
    return _load(db, class_id)


def list_classes(
    db: Session,
    start: Optional[date] = None,
    end: Optional[date] = None,
    educator_id: Optional[str] = None,
    site_id: Optional[str] = None,
) -> list[ConfirmedClass]:
    query = db.query(ConfirmedClass)
    if start:
        query = query.filter(ConfirmedClass.dateofclass >= start)
    if end:
        query = query.filter(ConfirmedClass.dateofclass <= end)
    if educator_id:
        query = query.filter(ConfirmedClass.educator_id == educator_id)
    if site_id:
        query = query.filter(ConfirmedClass.site_id == site_id)
    return query.order_by(ConfirmedClass.dateofclass).all()


def list_pending_bills(db: Session, today: Optional[date] = None) -> list[ConfirmedClass]:
    today = today or business_today()
    return (
        db.query(ConfirmedClass)
        .filter(ConfirmedClass.billdate.is_(None), ConfirmedClass.dateofclass < today)
        .order_by(ConfirmedClass.dateofclass)
        .all()
    )


def update_billing_fields(db: Session, class_id: str, actor: Actor, changes: dict[str, Any]) -> ConfirmedClass:
    """Edit roster/billing figures. Holds the row lock for the editing actor."""
    require(actor, Action.edit_billing)
    cc = _load(db, class_id)
    _ensure_open(cc)

    values = {k: v for k, v in changes.items() if k in BILLING_FIELDS}
    if not values:
        raise ValidationError(f"Nothing to update; editable fields are {', '.join(BILLING_FIELDS)}")

    before = class_snapshot(cc)
    with unit_of_work(db, f"update billing fields on class {class_id}"):
        updated = guarded_update(
            db, ConfirmedClass, class_id, actor.id, values, expected={"billdate": None}, hold=True,
        )
        _ledger(db, actor, Action.edit_billing, class_id, before, class_snapshot(updated))
    db.refresh(updated)
    logger.info("Billing fields %s updated on class %s by %s", sorted(values), class_id, actor.id)
    return updated


def mark_billed(db: Session, class_id: str, actor: Actor) -> ConfirmedClass:
    """Set the bill date. A class can be billed exactly once."""
    require(actor, Action.bill)
    cc = _load(db, class_id)
    _ensure_open(cc)
    if not _has_taken_place(cc):
        raise ValidationError("Class has not taken place yet", field="dateofclass")

    before = class_snapshot(cc)
    with unit_of_work(db, f"bill class {class_id}"):
        updated = guarded_update(
            db, ConfirmedClass, class_id, actor.id,
            {"billdate": datetime.now(timezone.utc)},
            expected={"billdate": None}, hold=False,
        )
        _ledger(db, actor, Action.bill, class_id, before, class_snapshot(updated))
    db.refresh(updated)
    logger.info("Class %s billed by %s", class_id, actor.id)
    return updated


def send_roster_reminder(db: Session, class_id: str, actor: Actor) -> notifications.NotificationResult:
    """Remind the educator that roster/evaluations/invoice are outstanding."""
    require(actor, Action.roster_reminder)
    cc = _load(db, class_id)
    _ensure_open(cc)
    if cc.student_count is not None:
        raise ValidationError("Roster already received for this class", field="student_count")

    educator = db.query(Educator).filter(Educator.id == cc.educator_id).first() if cc.educator_id else None
    site = db.query(Site).filter(Site.id == cc.site_id).first()
    result = notifications.dispatch(notifications.compose_billing_reminder(cc, educator, site))

    with unit_of_work(db, f"log roster reminder for class {class_id}"):
        entry = _ledger(db, actor, Action.roster_reminder, class_id, None, None)
        entry.notice_sent = result.sent
        entry.notice_error = result.ledger_error()
    return result


def submit_review(db: Session, class_id: str, actor: Actor, review: str) -> ConfirmedClass:
    """Client feedback on a class that has already taken place."""
    require(actor, Action.review)
    cc = _load(db, class_id)
    require_same_company(actor, cc.site.company_id if cc.site else None)
    if cc.dateofclass > business_today():
        raise ValidationError("Reviews can only be left after the class has taken place", field="dateofclass")
    if not review or not review.strip():
        raise ValidationError("Review text is required", field="review")

    before = class_snapshot(cc)
    with unit_of_work(db, f"store review for class {class_id}"):
        updated = guarded_update(db, ConfirmedClass, class_id, actor.id, {"review": review.strip()}, hold=False)
        _ledger(db, actor, Action.review, class_id, before, class_snapshot(updated))
    db.refresh(updated)
    logger.info("Review stored on class %s by %s", class_id, actor.id)
    return updated
