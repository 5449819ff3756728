"""Pydantic schemas for companies, contacts and projects."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Companies
# =============================================================================

class CompanyBase(BaseModel):
    legal_name: str | None = Field(None, max_length=255)
    website: str | None = Field(None, max_length=500)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    industry: str | None = Field(None, max_length=100)
    size: str | None = Field(None, max_length=50)
    street_address: str | None = Field(None, max_length=255)
    postal_code: str | None = Field(None, max_length=20)
    town: str | None = Field(None, max_length=100)
    country: str | None = Field(None, max_length=100)
    notes: str | None = None
    social_facebook: str | None = Field(None, max_length=500)
    social_instagram: str | None = Field(None, max_length=500)
    social_twitter: str | None = Field(None, max_length=500)
    social_linkedin: str | None = Field(None, max_length=500)
    social_youtube: str | None = Field(None, max_length=500)
    social_tiktok: str | None = Field(None, max_length=500)
    logo_url: str | None = Field(None, max_length=500)
    brand_primary_color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    brand_secondary_color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")


class CompanyCreate(CompanyBase):
    name: str = Field(..., min_length=1, max_length=255)


class CompanyUpdate(CompanyBase):
    """Partial update; only fields present in the payload are written."""
    name: str | None = Field(None, min_length=1, max_length=255)


class CompanyRead(CompanyBase):
    id: UUID
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Contacts
# =============================================================================

class ContactCreate(BaseModel):
    """New contact. Names are checked in the service so the message matches the form."""
    company_id: UUID
    first_name: str = ""
    last_name: str = ""
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    mobile: str | None = Field(None, max_length=50)
    job_title: str | None = Field(None, max_length=100)
    is_primary: bool = False


class ContactUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    mobile: str | None = Field(None, max_length=50)
    job_title: str | None = Field(None, max_length=100)
    is_primary: bool | None = None


class ContactRead(BaseModel):
    id: UUID
    company_id: UUID
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    mobile: str | None
    job_title: str | None
    is_primary: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Projects
# =============================================================================

def _parse_value(value):
    """Accept 12,500.00 style strings from the form."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    return value


class ProjectCreate(BaseModel):
    company_id: UUID | None = None
    primary_contact_id: UUID | None = None
    name: str = Field(..., min_length=1, max_length=255)
    project_type: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    status: str | None = Field(None, max_length=50)
    processed_outcome: str | None = Field(None, max_length=50)
    pipeline: str | None = Field(None, max_length=100)
    value: float | None = None
    start_date: date | None = None
    due_date: date | None = None

    @field_validator("value", mode="before")
    @classmethod
    def strip_thousands(cls, value):
        return _parse_value(value)


class ProjectUpdate(BaseModel):
    company_id: UUID | None = None
    primary_contact_id: UUID | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    project_type: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    status: str | None = Field(None, max_length=50)
    processed_outcome: str | None = Field(None, max_length=50)
    pipeline: str | None = Field(None, max_length=100)
    value: float | None = None
    start_date: date | None = None
    due_date: date | None = None

    @field_validator("value", mode="before")
    @classmethod
    def strip_thousands(cls, value):
        return _parse_value(value)


class ProjectRead(BaseModel):
    id: UUID
    company_id: UUID | None
    primary_contact_id: UUID | None
    name: str
    project_type: str
    description: str | None
    status: str | None
    processed_outcome: str | None
    pipeline: str | None
    value: float | None
    start_date: date | None
    due_date: date | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
