"""Detect half-applied promotions left behind by earlier failures."""
import logging

from sqlalchemy.orm import Session

from app.models.class_request import ClassRequest
from app.models.confirmed_class import ConfirmedClass

logger = logging.getLogger(__name__)


def find_orphaned_requests(db: Session) -> list[tuple[ConfirmedClass, ClassRequest]]:
    """Pairs where a confirmed class exists but its source request was never deleted."""
    return (
        db.query(ConfirmedClass, ClassRequest)
        .join(ClassRequest, ClassRequest.id == ConfirmedClass.source_request_id)
        .all()
    )


def reconcile_promotions(db: Session, repair: bool = False) -> list[dict[str, str]]:
    """Report every inconsistent promotion; with ``repair`` delete the stale requests."""
    findings = []
    for confirmed, request in find_orphaned_requests(db):
        logger.error(
            "Request %s still present after promotion to confirmed class %s",
            request.id, confirmed.id,
        )
        findings.append({"request_id": request.id, "confirmed_class_id": confirmed.id})
        if repair:
            db.delete(request)

    if repair and findings:
        db.commit()
        logger.warning("Reconciliation removed %d stale class request(s)", len(findings))
    return findings
