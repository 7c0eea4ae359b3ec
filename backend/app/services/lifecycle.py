"""Class request lifecycle — the single authority for request status changes.

Responsibilities:
- Transition table: which action is legal from which status, and what it needs
- Authorization: role capability plus ownership (assigned educator, owning coordinator)
- Guarded writes: lock-owner compare-and-set on every mutation
- Promotion: ConfirmedClass insert and request delete in one transaction
- Ledger: a LifecycleEvent row for every write
- Notices: contact / new-request emails as explicit, reported steps
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.models.class_request import ClassRequest, ClassRequestStatus, INITIAL_STATUSES
from app.models.confirmed_class import ConfirmedClass
from app.models.educator import Educator
from app.models.lifecycle_event import LifecycleEvent
from app.models.organization import Company, Site
from app.models.profile import Profile, STAFF_ROLES
from app.services import catalog, notifications
from app.services.authz import Action, Actor, EDUCATOR_FACING, educator_for, require, require_same_company
from app.services.store import guarded_delete, guarded_update, unit_of_work

logger = logging.getLogger(__name__)

S = ClassRequestStatus
ACTIVE_STATUSES = frozenset(S)


@dataclass(frozen=True)
class Transition:
    sources: frozenset
    target: Optional[ClassRequestStatus]  # None: the request row ends (promoted/removed)
    required: tuple[str, ...] = ()


TRANSITIONS: dict[Action, Transition] = {
    Action.assign_educator: Transition(INITIAL_STATUSES, S.confirm_educator_dates, ("educator_id",)),
    Action.contact_educator: Transition(frozenset({S.confirm_educator_dates}), S.awaiting_date, ("educator_id",)),
    Action.accept: Transition(frozenset({S.confirm_educator_dates, S.awaiting_date}), S.accepted, ("educator_id",)),
    Action.decline: Transition(frozenset({S.confirm_educator_dates, S.awaiting_date}), S.pending),
    Action.record_date: Transition(frozenset({S.awaiting_date, S.accepted}), S.final_confirmation, ("class_date",)),
    Action.promote: Transition(
        frozenset({S.final_confirmation}), None, ("class_date", "site_id", "educator_id"),
    ),
    Action.remove: Transition(ACTIVE_STATUSES, None),
}


@dataclass
class Outcome:
    """A transition result plus the notice it produced, if any."""
    request: Optional[ClassRequest]
    notification: Optional[notifications.NotificationResult] = None


# ── Helpers ─────────────────────────────────────────────────────────


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _snapshot(cr: ClassRequest) -> dict[str, Any]:
    """Serialize a request to a JSON-safe dict for the ledger."""
    def iso(value):
        return value.isoformat() if value else None

    return {
        "id": cr.id,
        "class_type": cr.class_type,
        "status": cr.status.value if cr.status else None,
        "company_id": cr.company_id,
        "site_id": cr.site_id,
        "educator_id": cr.educator_id,
        "coordinator_id": cr.coordinator_id,
        "queue_user_id": cr.queue_user_id,
        "preferred_date_start": iso(cr.preferred_date_start),
        "preferred_date_end": iso(cr.preferred_date_end),
        "class_date": iso(cr.class_date),
        "offer_sent_at": iso(cr.offer_sent_at),
        "educator_response_at": iso(cr.educator_response_at),
        "notes": cr.notes,
    }


def _load(db: Session, request_id: str) -> ClassRequest:
    cr = db.query(ClassRequest).filter(ClassRequest.id == request_id).first()
    if not cr:
        raise NotFoundError("Class request not found")
    return cr


def _authorize(db: Session, actor: Actor, action: Action, cr: Optional[ClassRequest] = None) -> None:
    require(actor, action)
    if cr is None:
        return
    if action in EDUCATOR_FACING and not actor.is_staff:
        educator = educator_for(db, actor)
        if educator is None or cr.educator_id != educator.id:
            raise AuthorizationError("Only the assigned educator may respond to this class request")
    if action == Action.remove and cr.coordinator_id != actor.id:
        raise AuthorizationError("Only the coordinator who owns this request may remove it")


def _check_transition(cr: ClassRequest, action: Action) -> Transition:
    transition = TRANSITIONS[action]
    if cr.status not in transition.sources:
        raise ValidationError(
            f"Cannot {action.value.replace('_', ' ')} a request in status '{cr.status.value}'",
            field="status",
        )
    return transition


def _require_fields(action: Action, values: dict[str, Any], fields: tuple[str, ...]) -> None:
    for name in fields:
        if values.get(name) in (None, ""):
            raise ValidationError(f"{name} is required to {action.value.replace('_', ' ')}", field=name)


def _ledger(
    db: Session,
    actor: Actor,
    action: Action,
    request_id: str,
    before: Optional[dict],
    after: Optional[dict],
    confirmed_class_id: Optional[str] = None,
) -> LifecycleEvent:
    entry = LifecycleEvent(
        request_id=request_id,
        confirmed_class_id=confirmed_class_id,
        actor_id=actor.id,
        action=action.value,
        from_status=(before or {}).get("status"),
        to_status=(after or {}).get("status"),
        before_snapshot=before,
        after_snapshot=after,
    )
    db.add(entry)
    return entry


def _record_notice(db: Session, entry: LifecycleEvent, result: notifications.NotificationResult) -> None:
    """Attach a notice outcome to its ledger row. The transition is already committed."""
    try:
        with unit_of_work(db, "record notification outcome"):
            entry.notice_sent = result.sent
            entry.notice_error = result.ledger_error()
    except Exception:
        logger.exception("Could not record outcome of %s notice for ledger entry %s", result.kind.value, entry.id)


def _transition(
    db: Session,
    cr: ClassRequest,
    actor: Actor,
    action: Action,
    values: dict[str, Any],
) -> tuple[ClassRequest, LifecycleEvent]:
    """Apply a status change guarded on the status it was validated against."""
    transition = _check_transition(cr, action)
    merged = {**_snapshot_values(cr), **values}
    _require_fields(action, merged, transition.required)

    before = _snapshot(cr)
    expected_status = cr.status
    payload = dict(values)
    payload["status"] = transition.target

    with unit_of_work(db, f"{action.value.replace('_', ' ')} for request {cr.id}"):
        updated = guarded_update(
            db, ClassRequest, cr.id, actor.id, payload,
            expected={"status": expected_status}, hold=False,
        )
        entry = _ledger(db, actor, action, cr.id, before, _snapshot(updated))
    db.refresh(updated)
    logger.info(
        "Request %s: %s → %s by %s (%s)",
        cr.id, expected_status.value, transition.target.value, actor.id, action.value,
    )
    return updated, entry


def _snapshot_values(cr: ClassRequest) -> dict[str, Any]:
    return {
        "educator_id": cr.educator_id,
        "class_date": cr.class_date,
        "site_id": cr.site_id,
        "queue_user_id": cr.queue_user_id,
    }


def _resolve_site(db: Session, site_id: Optional[str], company_id: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """Validate site/company references; derive the company from the site when omitted."""
    if company_id and not db.query(Company).filter(Company.id == company_id).first():
        raise NotFoundError("Company not found")
    if not site_id:
        return None, company_id
    site = db.query(Site).filter(Site.id == site_id).first()
    if not site:
        raise NotFoundError("Site not found")
    if company_id and site.company_id != company_id:
        raise ValidationError("Site does not belong to the selected company", field="site_id")
    return site.id, site.company_id


def _require_educator(db: Session, educator_id: Optional[str]) -> Educator:
    if not educator_id:
        raise ValidationError("An educator must be selected", field="educator_id")
    educator = db.query(Educator).filter(Educator.id == educator_id).first()
    if not educator:
        raise NotFoundError("Educator not found")
    return educator


def _require_staff_profile(db: Session, profile_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == profile_id).first()
    if not profile:
        raise NotFoundError("Coordinator profile not found")
    if profile.role not in STAFF_ROLES:
        raise ValidationError("Coordinator must be a staff member", field="coordinator_id")
    return profile


def _validate_window(start: Optional[date], end: Optional[date]) -> None:
    if start is None:
        raise ValidationError("Preferred start date is required", field="preferred_date_start")
    if end is None:
        raise ValidationError("Preferred end date is required", field="preferred_date_end")
    if start > end:
        raise ValidationError("Preferred start date must not be after the end date", field="preferred_date_end")


# ── Queries ─────────────────────────────────────────────────────────


def get_request(db: Session, request_id: str) -> ClassRequest:
    return _load(db, request_id)


def list_requests(
    db: Session,
    status: Optional[ClassRequestStatus] = None,
    queue_user_id: Optional[str] = None,
    coordinator_id: Optional[str] = None,
) -> list[ClassRequest]:
    query = db.query(ClassRequest)
    if status:
        query = query.filter(ClassRequest.status == status)
    if queue_user_id:
        query = query.filter(ClassRequest.queue_user_id == queue_user_id)
    if coordinator_id:
        query = query.filter(ClassRequest.coordinator_id == coordinator_id)
    return query.order_by(ClassRequest.preferred_date_start).all()


def queue_for(db: Session, actor: Actor) -> list[ClassRequest]:
    """Requests currently sitting in the actor's work queue."""
    return list_requests(db, queue_user_id=actor.id)


def history(db: Session, request_id: str) -> list[LifecycleEvent]:
    return (
        db.query(LifecycleEvent)
        .filter(LifecycleEvent.request_id == request_id)
        .order_by(LifecycleEvent.created_at, LifecycleEvent.id)
        .all()
    )


def estimate(db: Session, request_id: str, educator_id: Optional[str] = None) -> dict[str, Any]:
    """Cost estimate for a request: catalog hours × educator rate1."""
    cr = _load(db, request_id)
    educator = _require_educator(db, educator_id or cr.educator_id)
    types = cr.class_types
    return {
        "request_id": cr.id,
        "educator_id": educator.id,
        "class_types": types,
        "hours": catalog.hours_for(types),
        "rate": Decimal(str(educator.rate1)) if educator.rate1 is not None else None,
        "estimate": catalog.estimate_cost(types, educator.rate1),
    }


# ── Transitions ─────────────────────────────────────────────────────


def create_request(
    db: Session,
    actor: Actor,
    class_types: list[str],
    preferred_date_start: Optional[date],
    preferred_date_end: Optional[date],
    site_id: Optional[str] = None,
    company_id: Optional[str] = None,
    coordinator_id: Optional[str] = None,
    notes: Optional[str] = None,
    notify_staff: bool = False,
) -> Outcome:
    """Submit a new request in its initial status."""
    require(actor, Action.create_request)
    types = catalog.validate_class_types(class_types)
    _validate_window(preferred_date_start, preferred_date_end)
    site_id, company_id = _resolve_site(db, site_id, company_id)
    if not actor.is_staff:
        company_id = company_id or actor.company_id
        require_same_company(actor, company_id)

    owner = coordinator_id or actor.id
    if owner != actor.id:
        if not actor.is_staff:
            raise AuthorizationError("Only staff may create a request on behalf of another coordinator")
        _require_staff_profile(db, owner)

    cr = ClassRequest(
        class_type=catalog.join_class_types(types),
        company_id=company_id,
        site_id=site_id,
        coordinator_id=owner,
        queue_user_id=owner,
        preferred_date_start=preferred_date_start,
        preferred_date_end=preferred_date_end,
        status=S.pending if actor.is_staff else S.pending_review,
        notes=notes,
        last_updated=_now(),
    )
    with unit_of_work(db, "create class request"):
        db.add(cr)
        db.flush()
        entry = _ledger(db, actor, Action.create_request, cr.id, None, _snapshot(cr))
    db.refresh(cr)
    logger.info("Class request %s created by %s (%s) with status '%s'", cr.id, actor.id, actor.role.value, cr.status.value)

    result = None
    if notify_staff:
        requester = db.query(Profile).filter(Profile.id == actor.id).first()
        notice = notifications.compose_new_request(
            cr,
            requester.full_name if requester else actor.id,
            site=cr.site,
            company=db.query(Company).filter(Company.id == cr.company_id).first() if cr.company_id else None,
        )
        result = notifications.dispatch(notice)
        _record_notice(db, entry, result)
    return Outcome(request=cr, notification=result)


def edit_request(db: Session, request_id: str, actor: Actor, changes: dict[str, Any]) -> ClassRequest:
    """Staff edit of request details. Holds the edit lock for the actor."""
    cr = _load(db, request_id)
    _authorize(db, actor, Action.edit_request, cr)

    values: dict[str, Any] = {}
    if "class_types" in changes:
        values["class_type"] = catalog.join_class_types(catalog.validate_class_types(changes["class_types"] or []))
    if "site_id" in changes or "company_id" in changes:
        site_id, company_id = _resolve_site(
            db, changes.get("site_id", cr.site_id), changes.get("company_id", cr.company_id),
        )
        values["site_id"], values["company_id"] = site_id, company_id
    if "educator_id" in changes:
        if changes["educator_id"] is None:
            if cr.status not in INITIAL_STATUSES:
                raise ValidationError(
                    f"A request in status '{cr.status.value}' must keep its educator", field="educator_id",
                )
            values["educator_id"] = None
        else:
            values["educator_id"] = _require_educator(db, changes["educator_id"]).id
    if changes.get("coordinator_id"):
        values["coordinator_id"] = _require_staff_profile(db, changes["coordinator_id"]).id
    if "notes" in changes:
        values["notes"] = changes["notes"]
    if "preferred_date_start" in changes or "preferred_date_end" in changes:
        start = changes.get("preferred_date_start", cr.preferred_date_start)
        end = changes.get("preferred_date_end", cr.preferred_date_end)
        _validate_window(start, end)
        values["preferred_date_start"], values["preferred_date_end"] = start, end

    before = _snapshot(cr)
    with unit_of_work(db, f"edit request {cr.id}"):
        updated = guarded_update(db, ClassRequest, cr.id, actor.id, values, hold=True)
        _ledger(db, actor, Action.edit_request, cr.id, before, _snapshot(updated))
    db.refresh(updated)
    logger.info("Request %s edited by %s: %s", cr.id, actor.id, sorted(values))
    return updated


def assign_educator(db: Session, request_id: str, actor: Actor, educator_id: Optional[str]) -> ClassRequest:
    """pending → Confirm Educator Dates. The request moves into the assigner's queue."""
    cr = _load(db, request_id)
    _authorize(db, actor, Action.assign_educator, cr)
    _check_transition(cr, Action.assign_educator)
    educator = _require_educator(db, educator_id)
    updated, _ = _transition(db, cr, actor, Action.assign_educator, {
        "educator_id": educator.id,
        "queue_user_id": actor.id,
    })
    return updated


def contact_educator(db: Session, request_id: str, actor: Actor, send_notice: bool = True) -> Outcome:
    """Confirm Educator Dates → Awaiting Date, optionally emailing the offer.

    The status change is committed before the notice is sent; a failed
    notice is reported in the outcome and the ledger, never rolled back.
    """
    cr = _load(db, request_id)
    _authorize(db, actor, Action.contact_educator, cr)
    updated, entry = _transition(db, cr, actor, Action.contact_educator, {"offer_sent_at": _now()})

    result = None
    if send_notice:
        educator = db.query(Educator).filter(Educator.id == updated.educator_id).first()
        notice = notifications.compose_contact_educator(updated, educator, site=updated.site)
        result = notifications.dispatch(notice)
        _record_notice(db, entry, result)
    else:
        logger.info("Request %s: educator contacted out of band, no notice sent", updated.id)
    return Outcome(request=updated, notification=result)


def record_date(db: Session, request_id: str, actor: Actor, class_date: Optional[date]) -> ClassRequest:
    """Awaiting Date/accepted → Final Confirmation.

    The request returns to the owning coordinator's queue whoever handled it
    in between.
    """
    cr = _load(db, request_id)
    _authorize(db, actor, Action.record_date, cr)
    _check_transition(cr, Action.record_date)
    if class_date is None:
        raise ValidationError("class_date is required to record date", field="class_date")
    if not (cr.preferred_date_start <= class_date <= cr.preferred_date_end):
        logger.info("Request %s: class date %s falls outside the preferred window", cr.id, class_date)
    updated, _ = _transition(db, cr, actor, Action.record_date, {
        "class_date": class_date,
        "educator_response_at": _now(),
        "queue_user_id": cr.coordinator_id,
    })
    return updated


def respond_to_offer(db: Session, request_id: str, actor: Actor, accept: bool) -> ClassRequest:
    """Educator accepts (→ accepted) or declines (→ pending, educator cleared)."""
    action = Action.accept if accept else Action.decline
    cr = _load(db, request_id)
    _authorize(db, actor, action, cr)
    values: dict[str, Any] = {"educator_response_at": _now()}
    if not accept:
        values.update({"educator_id": None, "offer_sent_at": None, "queue_user_id": cr.coordinator_id})
    updated, _ = _transition(db, cr, actor, action, values)
    return updated


def promote(db: Session, request_id: str, actor: Actor) -> ConfirmedClass:
    """Final Confirmation → ConfirmedClass.

    Insert and delete share one transaction: either both land or neither
    does. The delete is guarded on status, so a concurrent promotion of the
    same request fails instead of producing a duplicate.
    """
    cr = _load(db, request_id)
    _authorize(db, actor, Action.promote, cr)
    transition = _check_transition(cr, Action.promote)
    _require_fields(Action.promote, _snapshot_values(cr), transition.required)

    before = _snapshot(cr)
    confirmed = ConfirmedClass(
        subjects=cr.class_type,
        dateofclass=cr.class_date,
        site_id=cr.site_id,
        educator_id=cr.educator_id,
        coordinator_id=cr.coordinator_id,
        notes=cr.notes,
        source_request_id=cr.id,
        last_updated=_now(),
    )
    with unit_of_work(db, f"promote request {cr.id}"):
        db.add(confirmed)
        db.flush()
        guarded_delete(db, ClassRequest, cr.id, actor.id, expected={"status": S.final_confirmation})
        _ledger(
            db, actor, Action.promote, cr.id, before, {"status": "promoted", "confirmed_class_id": confirmed.id},
            confirmed_class_id=confirmed.id,
        )
    db.refresh(confirmed)
    logger.info("Request %s promoted to confirmed class %s by %s", request_id, confirmed.id, actor.id)
    return confirmed


def remove(db: Session, request_id: str, actor: Actor) -> None:
    """Withdraw a request. Only its owning coordinator may do this."""
    cr = _load(db, request_id)
    _authorize(db, actor, Action.remove, cr)
    _check_transition(cr, Action.remove)

    before = _snapshot(cr)
    with unit_of_work(db, f"remove request {cr.id}"):
        guarded_delete(db, ClassRequest, cr.id, actor.id, expected={"status": cr.status})
        _ledger(db, actor, Action.remove, request_id, before, {"status": "removed"})
    logger.info("Request %s removed by coordinator %s", request_id, actor.id)
