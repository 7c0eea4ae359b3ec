"""Pydantic schemas for class requests and their transitions."""
from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel

from app.models.class_request import ClassRequestStatus


class ClassRequestCreate(BaseModel):
    class_types: list[str]
    preferred_date_start: date
    preferred_date_end: date
    company_id: Optional[str] = None
    site_id: Optional[str] = None
    coordinator_id: Optional[str] = None
    notes: Optional[str] = None
    notify_staff: bool = False


class ClassRequestEdit(BaseModel):
    class_types: Optional[list[str]] = None
    company_id: Optional[str] = None
    site_id: Optional[str] = None
    educator_id: Optional[str] = None
    coordinator_id: Optional[str] = None
    preferred_date_start: Optional[date] = None
    preferred_date_end: Optional[date] = None
    notes: Optional[str] = None


class AssignEducatorIn(BaseModel):
    educator_id: str


class ContactEducatorIn(BaseModel):
    send_notice: bool = True


class RecordDateIn(BaseModel):
    class_date: date


class OfferResponseIn(BaseModel):
    accept: bool


class ClassRequestOut(BaseModel):
    id: str
    class_type: str
    class_types: list[str]
    status: ClassRequestStatus
    company_id: Optional[str] = None
    site_id: Optional[str] = None
    educator_id: Optional[str] = None
    coordinator_id: str
    queue_user_id: Optional[str] = None
    preferred_date_start: date
    preferred_date_end: date
    class_date: Optional[date] = None
    notes: Optional[str] = None
    offer_sent_at: Optional[datetime] = None
    educator_response_at: Optional[datetime] = None
    locked_by_user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NotificationOut(BaseModel):
    kind: str
    to: Optional[str] = None
    sent: bool
    error: Optional[str] = None


class TransitionOut(BaseModel):
    request: ClassRequestOut
    notification: Optional[NotificationOut] = None


class EstimateOut(BaseModel):
    request_id: str
    educator_id: str
    class_types: list[str]
    hours: Decimal
    rate: Optional[Decimal] = None
    estimate: Decimal


class LifecycleEventOut(BaseModel):
    id: str
    request_id: Optional[str] = None
    confirmed_class_id: Optional[str] = None
    actor_id: str
    action: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    before_snapshot: Optional[dict[str, Any]] = None
    after_snapshot: Optional[dict[str, Any]] = None
    notice_sent: Optional[bool] = None
    notice_error: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
