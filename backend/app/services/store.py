"""Guarded writes — transactional unit of work plus the lock-owner compare-and-set.

Every mutable row carries ``locked_by_user_id`` and ``last_updated``. A write
goes through only when the row is unlocked, locked by the same actor, or the
holder's lease has lapsed. The check and the write are a single conditional
statement, so two actors can never both pass it.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import delete, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ConflictError, NotFoundError, StoreError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, what: str):
    """Commit on success; roll back on any failure.

    Database failures surface as StoreError. Domain errors raised inside the
    block propagate unchanged after the rollback.
    """
    try:
        yield
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store failure while trying to %s: %s", what, exc)
        raise StoreError(f"Could not {what}; no changes were applied") from exc
    except Exception:
        db.rollback()
        raise


def _lease_cutoff() -> datetime:
    return datetime.now(timezone.utc) - timedelta(seconds=settings.LOCK_LEASE_SECONDS)


def _conditions(model, pk: str, actor_id: str, expected: Optional[dict[str, Any]]) -> list:
    conditions = [
        model.id == pk,
        or_(
            model.locked_by_user_id.is_(None),
            model.locked_by_user_id == actor_id,
            model.last_updated < _lease_cutoff(),
        ),
    ]
    for column, value in (expected or {}).items():
        attr = getattr(model, column)
        conditions.append(attr.is_(None) if value is None else attr == value)
    return conditions


def _diagnose(db: Session, model, pk: str, actor_id: str, expected: Optional[dict[str, Any]]) -> None:
    """Explain why a guarded statement matched no row. Always raises."""
    label = model.__name__
    row = db.get(model, pk, populate_existing=True)
    if row is None:
        raise NotFoundError(f"{label} {pk} not found")
    if row.locked_by_user_id and row.locked_by_user_id != actor_id:
        raise ConflictError(f"{label} {pk} is locked by user {row.locked_by_user_id}")
    for column, value in (expected or {}).items():
        current = getattr(row, column)
        if current != value:
            raise ConflictError(f"{label} {pk} changed concurrently: {column} is now {current!r}")
    raise ConflictError(f"{label} {pk} changed concurrently; re-fetch and retry")


def guarded_update(
    db: Session,
    model,
    pk: str,
    actor_id: str,
    values: dict[str, Any],
    expected: Optional[dict[str, Any]] = None,
    hold: bool = True,
):
    """Compare-and-set update. Does not commit.

    ``hold`` leaves the actor as lock owner (field editing); otherwise the
    lock is cleared with the write (lifecycle hand-off).
    """
    payload = dict(values)
    payload["last_updated"] = datetime.now(timezone.utc)
    payload["locked_by_user_id"] = actor_id if hold else None

    stmt = (
        update(model)
        .where(*_conditions(model, pk, actor_id, expected))
        .values(**payload)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount == 0:
        _diagnose(db, model, pk, actor_id, expected)
    return db.get(model, pk, populate_existing=True)


def guarded_delete(
    db: Session,
    model,
    pk: str,
    actor_id: str,
    expected: Optional[dict[str, Any]] = None,
) -> None:
    """Compare-and-delete. Does not commit."""
    stmt = (
        delete(model)
        .where(*_conditions(model, pk, actor_id, expected))
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount == 0:
        _diagnose(db, model, pk, actor_id, expected)
    stale = db.identity_map.get(db.identity_key(model, pk))
    if stale is not None:
        db.expunge(stale)


def release_lock(db: Session, model, pk: str, actor_id: str, override: bool = False):
    """Clear the lock owner. Only the holder may release unless ``override``."""
    row = db.get(model, pk)
    if row is None:
        raise NotFoundError(f"{model.__name__} {pk} not found")
    if row.locked_by_user_id is None:
        return row
    if row.locked_by_user_id != actor_id and not override:
        raise ConflictError(f"{model.__name__} {pk} is locked by user {row.locked_by_user_id}")

    with unit_of_work(db, f"release lock on {model.__name__} {pk}"):
        row.locked_by_user_id = None
    db.refresh(row)
    logger.info("Lock on %s %s released by %s", model.__name__, pk, actor_id)
    return row
