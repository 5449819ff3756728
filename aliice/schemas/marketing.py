"""Pydantic schemas for marketing campaigns, spend, leads and metrics."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from aliice.db.enums import DealStatus, ImportSource, MarketingChannel


# =============================================================================
# Campaigns
# =============================================================================

class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    channel: MarketingChannel = MarketingChannel.OTHER
    utm_campaign: str | None = Field(None, max_length=255)
    utm_source: str | None = Field(None, max_length=255)
    utm_medium: str | None = Field(None, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    budget: float | None = Field(None, ge=0)
    is_active: bool = True


class CampaignUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    channel: MarketingChannel | None = None
    utm_campaign: str | None = Field(None, max_length=255)
    utm_source: str | None = Field(None, max_length=255)
    utm_medium: str | None = Field(None, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    budget: float | None = Field(None, ge=0)
    is_active: bool | None = None


class CampaignRead(BaseModel):
    id: UUID
    project_id: UUID
    name: str
    channel: MarketingChannel
    utm_campaign: str | None
    utm_source: str | None
    utm_medium: str | None
    start_date: date | None
    end_date: date | None
    budget: float | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Expense logs
# =============================================================================

class ExpenseCreate(BaseModel):
    date_start: date
    date_end: date | None = None
    channel: MarketingChannel = MarketingChannel.OTHER
    campaign_name: str | None = Field(None, max_length=255)
    spend_amount: float = Field(0, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    manual_clicks: int | None = Field(None, ge=0)
    manual_impressions: int | None = Field(None, ge=0)
    manual_conversions: int | None = Field(None, ge=0)
    notes: str | None = None
    country: str | None = Field(None, max_length=100)
    region: str | None = Field(None, max_length=100)
    city: str | None = Field(None, max_length=100)


class ExpenseUpdate(BaseModel):
    date_start: date | None = None
    date_end: date | None = None
    channel: MarketingChannel | None = None
    campaign_name: str | None = Field(None, max_length=255)
    spend_amount: float | None = Field(None, ge=0)
    manual_clicks: int | None = Field(None, ge=0)
    manual_impressions: int | None = Field(None, ge=0)
    manual_conversions: int | None = Field(None, ge=0)
    notes: str | None = None
    country: str | None = Field(None, max_length=100)
    region: str | None = Field(None, max_length=100)
    city: str | None = Field(None, max_length=100)


class ExpenseRead(BaseModel):
    id: UUID
    project_id: UUID
    date_start: date
    date_end: date
    channel: MarketingChannel
    campaign_name: str | None
    spend_amount: float
    currency: str
    manual_clicks: int | None
    manual_impressions: int | None
    manual_conversions: int | None
    notes: str | None
    import_source: ImportSource
    import_filename: str | None
    country: str | None
    region: str | None
    city: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ExpenseImportResult(BaseModel):
    imported: int
    duplicates: int
    skipped: int


# =============================================================================
# Leads
# =============================================================================

class LeadCreate(BaseModel):
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    company_name: str | None = Field(None, max_length=255)
    channel: MarketingChannel | None = None
    lead_source: str | None = Field(None, max_length=100)
    utm_source: str | None = Field(None, max_length=255)
    utm_medium: str | None = Field(None, max_length=255)
    utm_campaign: str | None = Field(None, max_length=255)
    utm_content: str | None = Field(None, max_length=255)
    utm_term: str | None = Field(None, max_length=255)
    gclid: str | None = Field(None, max_length=255)
    fbclid: str | None = Field(None, max_length=255)
    msclkid: str | None = Field(None, max_length=255)
    ttclid: str | None = Field(None, max_length=255)
    li_fat_id: str | None = Field(None, max_length=255)
    landing_page: str | None = Field(None, max_length=1000)
    deal_value: float | None = Field(None, ge=0)
    deal_status: DealStatus = DealStatus.OPEN
    country: str | None = Field(None, max_length=100)
    region: str | None = Field(None, max_length=100)
    city: str | None = Field(None, max_length=100)


class PublicLeadSubmit(LeadCreate):
    """Landing-page form post."""
    project_id: UUID


class LeadUpdate(BaseModel):
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    company_name: str | None = Field(None, max_length=255)
    deal_value: float | None = Field(None, ge=0)
    deal_status: DealStatus | None = None
    country: str | None = Field(None, max_length=100)
    region: str | None = Field(None, max_length=100)
    city: str | None = Field(None, max_length=100)


class LeadRead(BaseModel):
    id: UUID
    project_id: UUID
    campaign_id: UUID | None
    first_name: str | None
    last_name: str | None
    email: str | None
    phone: str | None
    company_name: str | None
    channel: str | None
    lead_source: str | None
    utm_source: str | None
    utm_medium: str | None
    utm_campaign: str | None
    gclid: str | None
    fbclid: str | None
    deal_value: float | None
    deal_status: DealStatus
    converted_at: datetime | None
    country: str | None
    region: str | None
    city: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Metrics & reports
# =============================================================================

class KpiSummary(BaseModel):
    spend: float
    clicks: int
    impressions: int
    conversions: int
    leads: int
    won: int
    revenue: float
    cpl: float
    cpc: float
    ctr: float
    roas: float
    conversion_rate: float


class BreakdownRow(KpiSummary):
    key: str


class MetricsResponse(BaseModel):
    start: date
    end: date
    summary: KpiSummary
    by_channel: list[BreakdownRow]
    by_geo: list[BreakdownRow]
    by_campaign: list[BreakdownRow]


class ReportCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    start: date
    end: date


class ReportRead(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    date_start: date
    date_end: date
    snapshot: dict
    public_token: str
    created_at: datetime

    model_config = {"from_attributes": True}
