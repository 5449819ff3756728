"""Pydantic schemas for account clients and statements."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from aliice.db.enums import AdhocStatus, DocumentType


class AccountClientCreate(BaseModel):
    client_name: str = Field(..., min_length=1, max_length=255)
    company_id: UUID | None = None
    industry: str | None = Field(None, max_length=100)
    client_type: str | None = Field(None, max_length=50)
    client_category: str | None = Field(None, max_length=50)
    client_since: date | None = None
    contract_start: date | None = None
    contract_end: date | None = None
    services_signed: list[str] = []
    contract_type: str | None = Field(None, max_length=50)
    retainer_fee: float | None = Field(None, ge=0)
    service_based_fee: float | None = Field(None, ge=0)
    adhoc_fee: float | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)


class AccountClientUpdate(BaseModel):
    client_name: str | None = Field(None, min_length=1, max_length=255)
    company_id: UUID | None = None
    industry: str | None = Field(None, max_length=100)
    client_type: str | None = Field(None, max_length=50)
    client_category: str | None = Field(None, max_length=50)
    client_since: date | None = None
    contract_start: date | None = None
    contract_end: date | None = None
    services_signed: list[str] | None = None
    contract_type: str | None = Field(None, max_length=50)
    retainer_fee: float | None = Field(None, ge=0)
    service_based_fee: float | None = Field(None, ge=0)
    adhoc_fee: float | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)


class AccountClientRead(BaseModel):
    id: UUID
    company_id: UUID | None
    client_name: str
    industry: str | None
    client_type: str | None
    client_category: str | None
    client_since: date | None
    contract_start: date | None
    contract_end: date | None
    services_signed: list[str]
    contract_type: str | None
    retainer_fee: float | None
    service_based_fee: float | None
    adhoc_fee: float | None
    currency: str
    created_at: datetime

    model_config = {"from_attributes": True}


class DocumentRead(BaseModel):
    id: UUID
    client_id: UUID
    document_type: DocumentType
    title: str
    file_name: str
    file_url: str
    file_size: int
    mime_type: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AdhocCreate(BaseModel):
    date_requested: date
    description: str = Field(..., min_length=1)
    service_date_start: date | None = None
    service_date_end: date | None = None
    amount: float | None = Field(None, ge=0)
    status: AdhocStatus = AdhocStatus.PENDING


class AdhocUpdate(BaseModel):
    date_requested: date | None = None
    description: str | None = Field(None, min_length=1)
    service_date_start: date | None = None
    service_date_end: date | None = None
    amount: float | None = Field(None, ge=0)
    status: AdhocStatus | None = None


class AdhocRead(BaseModel):
    id: UUID
    client_id: UUID
    date_requested: date
    description: str
    service_date_start: date | None
    service_date_end: date | None
    amount: float | None
    status: AdhocStatus
    created_at: datetime

    model_config = {"from_attributes": True}
