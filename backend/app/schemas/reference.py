"""Pydantic schemas for reference entities: profiles, companies, sites, educators."""
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from app.models.profile import Role


class ProfileCreate(BaseModel):
    first_name: str
    last_name: str = ""
    email: str
    role: Role = Role.user
    company_id: Optional[str] = None


class ProfileOut(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    role: Role
    company_id: Optional[str] = None

    model_config = {"from_attributes": True}


class CompanyCreate(BaseModel):
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class CompanyOut(CompanyCreate):
    id: str

    model_config = {"from_attributes": True}


class SiteCreate(BaseModel):
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    site_email: Optional[str] = None


class SiteOut(SiteCreate):
    id: str
    company_id: str

    model_config = {"from_attributes": True}


class EducatorCreate(BaseModel):
    first: str
    last: str
    email1: Optional[str] = None
    email2: Optional[str] = None
    cell: Optional[str] = None
    teach_state: Optional[str] = None
    rate1: Optional[Decimal] = Field(default=None, ge=0)
    rate2: Optional[Decimal] = Field(default=None, ge=0)


class EducatorOut(EducatorCreate):
    id: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ClassTypeOut(BaseModel):
    name: str
    hours: Decimal
