"""Marketing attribution models: campaigns, spend, leads, reports."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aliice.core.time_utils import utcnow
from aliice.db.base import Base
from aliice.db.enums import DealStatus, ImportSource, MarketingChannel
from aliice.db.types import JSONType, Money


class MarketingCampaign(Base):
    """Ad campaign of a project. utm_campaign is the attribution key."""

    __tablename__ = "marketing_campaigns"
    __table_args__ = (
        Index("idx_marketing_campaigns_project", "project_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    channel: Mapped[str] = mapped_column(
        String(30), default=MarketingChannel.OTHER.value, nullable=False
    )
    utm_campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_medium: Mapped[str | None] = mapped_column(String(255), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    budget: Mapped[float | None] = mapped_column(Money, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class MarketingExpenseLog(Base):
    """
    Ad spend for a date range, entered manually or imported.

    import_hash dedupes re-imports of the same file rows per project.
    """

    __tablename__ = "marketing_expense_logs"
    __table_args__ = (
        UniqueConstraint("project_id", "import_hash", name="uq_marketing_expense_import_hash"),
        Index("idx_marketing_expenses_project_dates", "project_id", "date_start", "date_end"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    date_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_end: Mapped[date] = mapped_column(Date, nullable=False)
    channel: Mapped[str] = mapped_column(
        String(30), default=MarketingChannel.OTHER.value, nullable=False
    )
    campaign_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    spend_amount: Mapped[float] = mapped_column(Money, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="AED", nullable=False)
    manual_clicks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    manual_impressions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    manual_conversions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    import_source: Mapped[str] = mapped_column(
        String(10), default=ImportSource.MANUAL.value, nullable=False
    )
    import_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    import_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class MarketingLead(Base):
    """
    Captured lead with click identifiers for offline conversion upload.

    campaign_id is resolved once, at insert time, from utm_campaign.
    """

    __tablename__ = "marketing_leads"
    __table_args__ = (
        Index("idx_marketing_leads_project_created", "project_id", "created_at"),
        Index("idx_marketing_leads_campaign", "campaign_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    campaign_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("marketing_campaigns.id", ondelete="SET NULL"), nullable=True
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    channel: Mapped[str | None] = mapped_column(String(30), nullable=True)
    lead_source: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # UTM tags
    utm_source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_medium: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_content: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_term: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Click identifiers
    gclid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    fbclid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    msclkid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ttclid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    li_fat_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    landing_page: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Deal
    deal_value: Mapped[float | None] = mapped_column(Money, nullable=True)
    deal_status: Mapped[str] = mapped_column(
        String(10), default=DealStatus.OPEN.value, nullable=False
    )
    converted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Geo
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    campaign: Mapped[MarketingCampaign | None] = relationship()


class MarketingReport(Base):
    """Frozen metrics snapshot shareable through public_token."""

    __tablename__ = "marketing_reports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    date_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_end: Mapped[date] = mapped_column(Date, nullable=False)
    snapshot: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    public_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
