"""Class request API routes — every state change goes through services.lifecycle."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.deps import get_actor
from app.models.class_request import ClassRequest, ClassRequestStatus
from app.schemas.class_request import (
    AssignEducatorIn,
    ClassRequestCreate,
    ClassRequestEdit,
    ClassRequestOut,
    ContactEducatorIn,
    EstimateOut,
    LifecycleEventOut,
    OfferResponseIn,
    RecordDateIn,
    TransitionOut,
)
from app.schemas.confirmed_class import ConfirmedClassOut
from app.services import lifecycle
from app.services.authz import Action, Actor, require
from app.services.store import release_lock

logger = logging.getLogger(__name__)
router = APIRouter()


def _outcome(outcome: lifecycle.Outcome) -> dict:
    return {
        "request": outcome.request,
        "notification": outcome.notification.as_dict() if outcome.notification else None,
    }


@router.post("/", response_model=TransitionOut, status_code=status.HTTP_201_CREATED)
def create_class_request(
    payload: ClassRequestCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Submit a class request (clients land in 'Pending Review', staff in 'pending')."""
    outcome = lifecycle.create_request(
        db,
        actor,
        class_types=payload.class_types,
        preferred_date_start=payload.preferred_date_start,
        preferred_date_end=payload.preferred_date_end,
        site_id=payload.site_id,
        company_id=payload.company_id,
        coordinator_id=payload.coordinator_id,
        notes=payload.notes,
        notify_staff=payload.notify_staff,
    )
    return _outcome(outcome)


@router.get("/", response_model=list[ClassRequestOut])
def list_class_requests(
    status_filter: Optional[ClassRequestStatus] = Query(None, alias="status"),
    queue_user_id: Optional[str] = Query(None),
    coordinator_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """List requests ordered by preferred start date."""
    return lifecycle.list_requests(db, status=status_filter, queue_user_id=queue_user_id, coordinator_id=coordinator_id)


@router.get("/queue", response_model=list[ClassRequestOut])
def my_queue(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Requests assigned to the acting user."""
    return lifecycle.queue_for(db, actor)


@router.get("/{request_id}", response_model=ClassRequestOut)
def get_class_request(request_id: str, db: Session = Depends(get_db)):
    return lifecycle.get_request(db, request_id)


@router.patch("/{request_id}", response_model=ClassRequestOut)
def edit_class_request(
    request_id: str,
    payload: ClassRequestEdit,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Edit request details (staff only; takes the edit lock)."""
    return lifecycle.edit_request(db, request_id, actor, payload.model_dump(exclude_unset=True))


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_class_request(request_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Withdraw a request (owning coordinator only)."""
    lifecycle.remove(db, request_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{request_id}/assign-educator", response_model=ClassRequestOut)
def assign_educator(
    request_id: str,
    payload: AssignEducatorIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return lifecycle.assign_educator(db, request_id, actor, payload.educator_id)


@router.post("/{request_id}/contact-educator", response_model=TransitionOut)
def contact_educator(
    request_id: str,
    payload: Optional[ContactEducatorIn] = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Mark the offer as sent; the response reports whether the notice went out."""
    send_notice = payload.send_notice if payload else True
    return _outcome(lifecycle.contact_educator(db, request_id, actor, send_notice=send_notice))


@router.post("/{request_id}/record-date", response_model=ClassRequestOut)
def record_date(
    request_id: str,
    payload: RecordDateIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return lifecycle.record_date(db, request_id, actor, payload.class_date)


@router.post("/{request_id}/respond", response_model=ClassRequestOut)
def respond_to_offer(
    request_id: str,
    payload: OfferResponseIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Educator accepts or declines the offered class."""
    return lifecycle.respond_to_offer(db, request_id, actor, accept=payload.accept)


@router.post("/{request_id}/promote", response_model=ConfirmedClassOut, status_code=status.HTTP_201_CREATED)
def promote(request_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Final confirmation: create the confirmed class and retire the request."""
    return lifecycle.promote(db, request_id, actor)


@router.post("/{request_id}/release-lock", response_model=ClassRequestOut)
def release_request_lock(request_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    require(actor, Action.release_lock)
    return release_lock(db, ClassRequest, request_id, actor.id, override=actor.is_staff)


@router.get("/{request_id}/estimate", response_model=EstimateOut)
def estimate(request_id: str, educator_id: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Estimated cost: catalog hours for the selected classes × educator hourly rate."""
    return lifecycle.estimate(db, request_id, educator_id=educator_id)


@router.get("/{request_id}/history", response_model=list[LifecycleEventOut])
def request_history(request_id: str, db: Session = Depends(get_db)):
    return lifecycle.history(db, request_id)
