"""Upcoming-class reminders for educators and sites."""
import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ValidationError
from app.models.confirmed_class import ConfirmedClass
from app.models.educator import Educator
from app.models.lifecycle_event import LifecycleEvent
from app.models.organization import Site
from app.services import notifications
from app.services.authz import Action, Actor, require
from app.services.billing import business_today, get_class
from app.services.store import unit_of_work

logger = logging.getLogger(__name__)

RECIPIENTS = ("educator", "site")


def list_upcoming(db: Session, days: Optional[int] = None, today: Optional[date] = None) -> list[ConfirmedClass]:
    """Classes dated from today through ``days`` ahead, inclusive."""
    today = today or business_today()
    days = settings.REMINDER_LOOKAHEAD_DAYS if days is None else days
    return (
        db.query(ConfirmedClass)
        .filter(ConfirmedClass.dateofclass >= today, ConfirmedClass.dateofclass <= today + timedelta(days=days))
        .order_by(ConfirmedClass.dateofclass)
        .all()
    )


def send_class_reminders(
    db: Session,
    class_id: str,
    actor: Actor,
    recipients: Iterable[str] = RECIPIENTS,
) -> list[notifications.NotificationResult]:
    """Send the upcoming-class reminder to each requested recipient."""
    require(actor, Action.class_reminder)
    recipients = list(recipients)
    unknown = [r for r in recipients if r not in RECIPIENTS]
    if unknown or not recipients:
        raise ValidationError(f"Recipients must be drawn from {', '.join(RECIPIENTS)}", field="recipients")

    cc = get_class(db, class_id)
    results = []
    if "educator" in recipients:
        educator = db.query(Educator).filter(Educator.id == cc.educator_id).first() if cc.educator_id else None
        results.append(notifications.dispatch(notifications.compose_class_reminder_educator(cc, educator)))
    if "site" in recipients:
        site = db.query(Site).filter(Site.id == cc.site_id).first()
        results.append(notifications.dispatch(notifications.compose_class_reminder_site(cc, site)))

    with unit_of_work(db, f"log reminders for class {class_id}"):
        for result in results:
            db.add(LifecycleEvent(
                confirmed_class_id=cc.id,
                actor_id=actor.id,
                action=Action.class_reminder.value,
                after_snapshot={"kind": result.kind.value, "to": result.to},
                notice_sent=result.sent,
                notice_error=result.ledger_error(),
            ))
    logger.info("Reminders for class %s: %d sent, %d failed", class_id,
                sum(r.sent for r in results), sum(not r.sent for r in results))
    return results
