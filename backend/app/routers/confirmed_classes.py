"""Confirmed class (training log) routes — billing, reminders, reviews."""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.deps import get_actor
from app.models.confirmed_class import ConfirmedClass
from app.schemas.class_request import NotificationOut
from app.schemas.confirmed_class import BillingUpdate, ConfirmedClassOut, ReminderRequest, ReviewIn
from app.services import billing, reminders
from app.services.authz import Action, Actor, require
from app.services.store import release_lock

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[ConfirmedClassOut])
def list_confirmed_classes(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    educator_id: Optional[str] = Query(None),
    site_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return billing.list_classes(db, start=start, end=end, educator_id=educator_id, site_id=site_id)


@router.get("/pending-bills", response_model=list[ConfirmedClassOut])
def pending_bills(db: Session = Depends(get_db)):
    """Past classes with no bill date yet."""
    return billing.list_pending_bills(db)


@router.get("/upcoming", response_model=list[ConfirmedClassOut])
def upcoming(days: Optional[int] = Query(None, ge=0), db: Session = Depends(get_db)):
    """Classes within the reminder look-ahead window."""
    return reminders.list_upcoming(db, days=days)


@router.get("/{class_id}", response_model=ConfirmedClassOut)
def get_confirmed_class(class_id: str, db: Session = Depends(get_db)):
    return billing.get_class(db, class_id)


@router.patch("/{class_id}/billing", response_model=ConfirmedClassOut)
def update_billing(
    class_id: str,
    payload: BillingUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return billing.update_billing_fields(db, class_id, actor, payload.model_dump(exclude_unset=True))


@router.post("/{class_id}/bill", response_model=ConfirmedClassOut)
def bill_class(class_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return billing.mark_billed(db, class_id, actor)


@router.post("/{class_id}/roster-reminder", response_model=NotificationOut)
def roster_reminder(class_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return billing.send_roster_reminder(db, class_id, actor).as_dict()


@router.post("/{class_id}/reminders", response_model=list[NotificationOut])
def class_reminders(
    class_id: str,
    payload: Optional[ReminderRequest] = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    recipients = payload.recipients if payload else reminders.RECIPIENTS
    return [r.as_dict() for r in reminders.send_class_reminders(db, class_id, actor, recipients)]


@router.post("/{class_id}/review", response_model=ConfirmedClassOut)
def submit_review(
    class_id: str,
    payload: ReviewIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return billing.submit_review(db, class_id, actor, payload.review)


@router.post("/{class_id}/release-lock", response_model=ConfirmedClassOut)
def release_class_lock(class_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    require(actor, Action.release_lock)
    return release_lock(db, ConfirmedClass, class_id, actor.id, override=actor.is_staff)
