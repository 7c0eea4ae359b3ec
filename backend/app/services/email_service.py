"""Outbound email — Resend in production, log-only in development and tests."""
import logging
from typing import Any

import resend

from app.config import settings
from app.errors import NotificationError

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, html: str) -> dict[str, Any]:
    """Deliver one HTML message. Raises NotificationError on any failure."""
    if not to:
        raise NotificationError("No recipient address")

    backend = settings.EMAIL_BACKEND.lower()
    if backend == "log":
        logger.info("Email (log backend) to=%s subject=%r", to, subject)
        return {"id": None, "backend": "log"}

    if backend != "resend":
        raise NotificationError(f"Unknown email backend '{settings.EMAIL_BACKEND}'")
    if not settings.RESEND_API_KEY:
        raise NotificationError("Email service not configured: RESEND_API_KEY missing")

    resend.api_key = settings.RESEND_API_KEY
    try:
        response = resend.Emails.send({
            "from": settings.EMAIL_FROM_ADDRESS,
            "to": [to],
            "subject": subject,
            "html": html,
        })
    except Exception as exc:  # SDK raises ResendError and transport errors alike
        raise NotificationError(f"Failed to send email to {to}: {exc}") from exc

    logger.info("Email sent via Resend to %s: %s", to, response)
    return response
