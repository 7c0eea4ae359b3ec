"""Notification composer — builds reminder/notice emails from entity data.

Composition is pure; ``dispatch`` hands the result to the email service and
turns any delivery failure into a reported result. A failed notice never
undoes the workflow step that triggered it.
"""
import enum
import logging
from dataclasses import dataclass, asdict
from datetime import date
from html import escape
from typing import Any, Optional

from app.config import settings
from app.errors import NotificationError
from app.models.class_request import ClassRequest
from app.models.confirmed_class import ConfirmedClass
from app.models.educator import Educator
from app.models.organization import Company, Site
from app.services import email_service

logger = logging.getLogger(__name__)

NOTICE_ERROR_MAX = 500


class NoticeKind(str, enum.Enum):
    new_request = "new_request"
    contact_educator = "contact_educator"
    class_reminder_educator = "class_reminder_educator"
    class_reminder_site = "class_reminder_site"
    billing_reminder = "billing_reminder"


@dataclass
class Notice:
    kind: NoticeKind
    to: Optional[str]
    subject: str
    html: str


@dataclass
class NotificationResult:
    kind: NoticeKind
    to: Optional[str]
    sent: bool
    error: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data

    def ledger_error(self) -> Optional[str]:
        """Error text cut to fit the ledger column."""
        return (self.error or "")[:NOTICE_ERROR_MAX] or None


def _fmt_date(value: Optional[date]) -> str:
    return value.isoformat() if value else "N/A"


def _signoff() -> str:
    return f"<p>Thank you,</p>\n<p>{escape(settings.EMAIL_SIGNATURE)}</p>"


def compose_new_request(
    request: ClassRequest,
    requester_name: str,
    site: Optional[Site] = None,
    company: Optional[Company] = None,
) -> Notice:
    classes = escape(request.class_type)
    where = escape(site.name) if site else "no site selected"
    org = escape(company.name) if company else "an unassigned organization"
    html = f"""
<p>A new class request was submitted by {escape(requester_name)} for {org}.</p>
<p><strong>Classes:</strong> {classes}<br/>
<strong>Site:</strong> {where}<br/>
<strong>Preferred dates:</strong> {_fmt_date(request.preferred_date_start)} - {_fmt_date(request.preferred_date_end)}</p>
<p><strong>Notes:</strong> {escape(request.notes or '')}</p>
"""
    return Notice(
        kind=NoticeKind.new_request,
        to=settings.STAFF_NOTIFY_EMAIL or None,
        subject=f"New Class Request: {request.class_type}",
        html=html,
    )


def compose_contact_educator(request: ClassRequest, educator: Educator, site: Optional[Site] = None) -> Notice:
    classes = escape(request.class_type)
    where = escape(f"{site.name}, {site.city or ''} {site.state or ''}".strip()) if site else "a location to be confirmed"
    html = f"""
<p>Dear {escape(educator.full_name)},</p>
<p>We have a class request for <strong>'{classes}'</strong> at <strong>{where}</strong>.</p>
<p>The client's preferred dates are <strong>{_fmt_date(request.preferred_date_start)}</strong> to
<strong>{_fmt_date(request.preferred_date_end)}</strong>. Please reply with a date you are available to teach.</p>
{_signoff()}
"""
    return Notice(
        kind=NoticeKind.contact_educator,
        to=educator.email1,
        subject=f"Class Offer: '{request.class_type}' - please confirm your available date",
        html=html,
    )


def compose_class_reminder_educator(confirmed: ConfirmedClass, educator: Optional[Educator]) -> Notice:
    name = escape(educator.full_name) if educator else "Educator"
    class_name = confirmed.subjects or "this class"
    class_date = _fmt_date(confirmed.dateofclass)
    html = f"""
<p>Dear {name},</p>
<p>This is a friendly reminder about your upcoming class <strong>'{escape(class_name)}'</strong> scheduled for <strong>{class_date}</strong>.</p>
<p>Please ensure you are prepared for the session.</p>
{_signoff()}
"""
    return Notice(
        kind=NoticeKind.class_reminder_educator,
        to=educator.email1 if educator else None,
        subject=f"Reminder: Your Class '{class_name}' on {class_date}",
        html=html,
    )


def compose_class_reminder_site(confirmed: ConfirmedClass, site: Optional[Site]) -> Notice:
    site_name = site.name if site else "the site"
    class_name = confirmed.subjects or "this class"
    class_date = _fmt_date(confirmed.dateofclass)
    html = f"""
<p>Dear {escape(site_name)} Team,</p>
<p>This is a reminder that the class <strong>'{escape(class_name)}'</strong> is scheduled to take place on <strong>{class_date}</strong> at your location.</p>
<p>Please ensure everything is ready for the session.</p>
{_signoff()}
"""
    return Notice(
        kind=NoticeKind.class_reminder_site,
        to=site.site_email if site else None,
        subject=f"Reminder: Class '{class_name}' on {class_date} at {site_name}",
        html=html,
    )


def compose_billing_reminder(confirmed: ConfirmedClass, educator: Optional[Educator], site: Optional[Site]) -> Notice:
    name = escape(educator.full_name) if educator else "Educator"
    site_name = escape(site.name) if site else "the site"
    html = f"""
<p>Dear {name},</p>
<p>We have not yet received your roster and evaluations for the training session on <strong>{escape(confirmed.subjects)}</strong>
scheduled for <strong>{_fmt_date(confirmed.dateofclass)}</strong> at <strong>{site_name}</strong>.</p>
<p>Please provide the necessary documents at your earliest convenience.</p>
{_signoff()}
"""
    return Notice(
        kind=NoticeKind.billing_reminder,
        to=educator.email1 if educator else None,
        subject="Class Roster, Evaluation & Invoice Not Yet Received",
        html=html,
    )


def dispatch(notice: Notice) -> NotificationResult:
    """Send a composed notice. Never raises; failures come back as ``sent=False``."""
    try:
        email_service.send_email(notice.to, notice.subject, notice.html)
    except NotificationError as exc:
        logger.warning("Notice %s to %s not sent: %s", notice.kind.value, notice.to, exc)
        return NotificationResult(kind=notice.kind, to=notice.to, sent=False, error=str(exc))
    logger.info("Notice %s sent to %s", notice.kind.value, notice.to)
    return NotificationResult(kind=notice.kind, to=notice.to, sent=True)
