"""Pydantic schemas for confirmed classes (training log) and billing."""
from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class ConfirmedClassOut(BaseModel):
    id: str
    subjects: str
    dateofclass: date
    site_id: str
    educator_id: Optional[str] = None
    coordinator_id: Optional[str] = None
    notes: Optional[str] = None
    source_request_id: Optional[str] = None
    billable: Optional[Decimal] = None
    hours: Optional[Decimal] = None
    expenses: Optional[Decimal] = None
    student_count: Optional[int] = None
    billdate: Optional[datetime] = None
    review: Optional[str] = None
    locked_by_user_id: Optional[str] = None
    last_updated: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BillingUpdate(BaseModel):
    student_count: Optional[int] = Field(default=None, ge=0)
    billable: Optional[Decimal] = Field(default=None, ge=0)
    hours: Optional[Decimal] = Field(default=None, ge=0)
    expenses: Optional[Decimal] = Field(default=None, ge=0)


class ReminderRequest(BaseModel):
    recipients: list[str] = ["educator", "site"]


class ReviewIn(BaseModel):
    review: str
