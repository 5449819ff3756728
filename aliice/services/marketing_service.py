"""Marketing service - campaigns, spend logs and attributed leads."""

import logging
import re
from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from aliice.core.config import settings
from aliice.core.time_utils import utcnow
from aliice.db.enums import DealStatus, ImportSource
from aliice.db.models import MarketingCampaign, MarketingExpenseLog, MarketingLead, Project
from aliice.schemas.marketing import (
    CampaignCreate,
    CampaignUpdate,
    ExpenseCreate,
    ExpenseUpdate,
    LeadCreate,
    LeadUpdate,
    PublicLeadSubmit,
)

logger = logging.getLogger(__name__)


def get_project(db: Session, org_id: UUID, project_id: UUID) -> Project | None:
    return db.query(Project).filter(
        Project.id == project_id,
        Project.organization_id == org_id,
    ).first()


def _enum_values(updates: dict, *fields: str) -> dict:
    """Unwrap enum members; drop explicit nulls for non-nullable enum columns."""
    for field in fields:
        if field in updates:
            if updates[field] is None:
                updates.pop(field)
            else:
                updates[field] = updates[field].value
    return updates


# =============================================================================
# Campaigns
# =============================================================================

def list_campaigns(db: Session, project_id: UUID) -> list[MarketingCampaign]:
    """Campaigns in creation order (the attribution scan order)."""
    return db.query(MarketingCampaign).filter(
        MarketingCampaign.project_id == project_id
    ).order_by(MarketingCampaign.created_at.asc()).all()


def get_campaign(db: Session, project_id: UUID, campaign_id: UUID) -> MarketingCampaign | None:
    return db.query(MarketingCampaign).filter(
        MarketingCampaign.id == campaign_id,
        MarketingCampaign.project_id == project_id,
    ).first()


def create_campaign(
    db: Session, org_id: UUID, project_id: UUID, data: CampaignCreate
) -> MarketingCampaign:
    if not data.name.strip():
        raise ValueError("Campaign name is required")
    if data.start_date and data.end_date and data.end_date < data.start_date:
        raise ValueError("End date must be on or after start date")
    values = data.model_dump()
    values["name"] = data.name.strip()
    values["channel"] = data.channel.value
    campaign = MarketingCampaign(organization_id=org_id, project_id=project_id, **values)
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    return campaign


def update_campaign(db: Session, campaign: MarketingCampaign, data: CampaignUpdate) -> MarketingCampaign:
    """Edits never re-attribute existing leads."""
    updates = _enum_values(data.model_dump(exclude_unset=True), "channel")
    if "name" in updates and not (updates["name"] or "").strip():
        raise ValueError("Campaign name is required")
    if updates.get("is_active") is None:
        updates.pop("is_active", None)
    for field, value in updates.items():
        setattr(campaign, field, value)
    db.commit()
    db.refresh(campaign)
    return campaign


def delete_campaign(db: Session, campaign: MarketingCampaign) -> None:
    db.query(MarketingLead).filter(
        MarketingLead.campaign_id == campaign.id
    ).update({MarketingLead.campaign_id: None}, synchronize_session=False)
    db.delete(campaign)
    db.commit()


# =============================================================================
# Expense logs
# =============================================================================

def list_expenses(db: Session, project_id: UUID) -> list[MarketingExpenseLog]:
    return db.query(MarketingExpenseLog).filter(
        MarketingExpenseLog.project_id == project_id
    ).order_by(MarketingExpenseLog.date_start.desc(), MarketingExpenseLog.created_at.desc()).all()


def get_expense(db: Session, project_id: UUID, expense_id: UUID) -> MarketingExpenseLog | None:
    return db.query(MarketingExpenseLog).filter(
        MarketingExpenseLog.id == expense_id,
        MarketingExpenseLog.project_id == project_id,
    ).first()


def create_expense(
    db: Session, org_id: UUID, project_id: UUID, data: ExpenseCreate
) -> MarketingExpenseLog:
    date_end = data.date_end or data.date_start
    if date_end < data.date_start:
        raise ValueError("End date must be on or after start date")
    values = data.model_dump(exclude={"date_end", "currency", "channel"})
    expense = MarketingExpenseLog(
        organization_id=org_id,
        project_id=project_id,
        date_end=date_end,
        channel=data.channel.value,
        currency=(data.currency or settings.DEFAULT_CURRENCY).upper(),
        import_source=ImportSource.MANUAL.value,
        **values,
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


def update_expense(db: Session, expense: MarketingExpenseLog, data: ExpenseUpdate) -> MarketingExpenseLog:
    updates = _enum_values(data.model_dump(exclude_unset=True), "channel")
    for field in ("date_start", "date_end", "spend_amount"):
        if field in updates and updates[field] is None:
            updates.pop(field)
    for field, value in updates.items():
        setattr(expense, field, value)
    if expense.date_end < expense.date_start:
        db.rollback()
        raise ValueError("End date must be on or after start date")
    db.commit()
    db.refresh(expense)
    return expense


def delete_expense(db: Session, expense: MarketingExpenseLog) -> None:
    db.delete(expense)
    db.commit()


# =============================================================================
# Leads & attribution
# =============================================================================

def normalize_utm(value: str) -> str:
    """Lowercase with underscores and dashes read as spaces."""
    return re.sub(r"[_-]", " ", value.lower())


def match_campaign(
    utm_campaign: str | None, campaigns: Sequence[MarketingCampaign]
) -> MarketingCampaign | None:
    """
    First campaign (in the given order) the UTM tag belongs to.

    Matches on equal normalized utm_campaign, or the normalized campaign
    name containing / contained in the normalized tag.
    """
    if not utm_campaign:
        return None
    utm = normalize_utm(utm_campaign)
    for campaign in campaigns:
        name = normalize_utm(campaign.name)
        if campaign.utm_campaign and normalize_utm(campaign.utm_campaign) == utm:
            return campaign
        if utm in name or name in utm:
            return campaign
    return None


def list_leads(
    db: Session,
    project_id: UUID,
    deal_status: DealStatus | None = None,
    campaign_id: UUID | None = None,
) -> list[MarketingLead]:
    query = db.query(MarketingLead).filter(MarketingLead.project_id == project_id)
    if deal_status:
        query = query.filter(MarketingLead.deal_status == deal_status.value)
    if campaign_id:
        query = query.filter(MarketingLead.campaign_id == campaign_id)
    return query.order_by(MarketingLead.created_at.desc()).all()


def get_lead(db: Session, project_id: UUID, lead_id: UUID) -> MarketingLead | None:
    return db.query(MarketingLead).filter(
        MarketingLead.id == lead_id,
        MarketingLead.project_id == project_id,
    ).first()


def create_lead(db: Session, org_id: UUID, project_id: UUID, data: LeadCreate) -> MarketingLead:
    """Insert a lead and resolve its campaign from utm_campaign (insert time only)."""
    email = (data.email or "").strip() or None
    phone = (data.phone or "").strip() or None
    if not email and not phone:
        raise ValueError("Email or phone is required")

    campaign = match_campaign(data.utm_campaign, list_campaigns(db, project_id))
    values = data.model_dump(exclude={"email", "phone", "channel", "deal_status", "project_id"})
    lead = MarketingLead(
        organization_id=org_id,
        project_id=project_id,
        campaign_id=campaign.id if campaign else None,
        email=email,
        phone=phone,
        channel=data.channel.value if data.channel else (campaign.channel if campaign else None),
        deal_status=data.deal_status.value,
        converted_at=utcnow() if data.deal_status == DealStatus.WON else None,
        **values,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)
    return lead


def submit_public_lead(db: Session, data: PublicLeadSubmit) -> MarketingLead:
    """Unauthenticated capture. Public posts always start as open deals."""
    project = db.query(Project).filter(Project.id == data.project_id).first()
    if project is None:
        raise LookupError("Project not found")
    data = data.model_copy(update={"deal_status": DealStatus.OPEN, "deal_value": None})
    lead = create_lead(db, project.organization_id, project.id, data)
    logger.info("Public lead captured", extra={"project_id": str(project.id), "lead_id": str(lead.id)})
    return lead


def update_lead(db: Session, lead: MarketingLead, data: LeadUpdate) -> MarketingLead:
    """Won stamps converted_at (once); any other status clears it."""
    updates = data.model_dump(exclude_unset=True)
    status = updates.pop("deal_status", None)
    if status is not None:
        lead.deal_status = status.value
        if status == DealStatus.WON:
            if lead.converted_at is None:
                lead.converted_at = utcnow()
        else:
            lead.converted_at = None
    for field, value in updates.items():
        setattr(lead, field, value)
    if not (lead.email or lead.phone):
        db.rollback()
        raise ValueError("Email or phone is required")
    db.commit()
    db.refresh(lead)
    return lead


def delete_lead(db: Session, lead: MarketingLead) -> None:
    db.delete(lead)
    db.commit()
