"""Marketing KPIs and breakdowns.

The aggregation functions are pure reductions over rows already loaded
for a date range; every ratio with a zero denominator is 0.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from aliice.core.security import generate_public_token
from aliice.core.time_utils import as_utc, end_of_day, start_of_day
from aliice.db.enums import DealStatus
from aliice.db.models import MarketingCampaign, MarketingExpenseLog, MarketingLead, MarketingReport
from aliice.schemas.marketing import BreakdownRow, KpiSummary, MetricsResponse, ReportCreate

UNKNOWN_KEY = "Unknown"
UNATTRIBUTED_KEY = "Unattributed"


@dataclass
class _Totals:
    spend: float = 0.0
    clicks: int = 0
    impressions: int = 0
    conversions: int = 0
    leads: int = 0
    won: int = 0
    revenue: float = 0.0

    def add_expense(self, expense: MarketingExpenseLog) -> None:
        self.spend += float(expense.spend_amount or 0)
        self.clicks += expense.manual_clicks or 0
        self.impressions += expense.manual_impressions or 0
        self.conversions += expense.manual_conversions or 0

    def add_lead(self, lead: MarketingLead) -> None:
        self.leads += 1
        if lead.deal_status == DealStatus.WON.value:
            self.won += 1
            self.revenue += float(lead.deal_value or 0)


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    return numerator / denominator * scale if denominator else 0.0


def _kpis(totals: _Totals) -> dict:
    return {
        "spend": round(totals.spend, 2),
        "clicks": totals.clicks,
        "impressions": totals.impressions,
        "conversions": totals.conversions,
        "leads": totals.leads,
        "won": totals.won,
        "revenue": round(totals.revenue, 2),
        "cpl": _ratio(totals.spend, totals.leads),
        "cpc": _ratio(totals.spend, totals.clicks),
        "ctr": _ratio(totals.clicks, totals.impressions, 100),
        "roas": _ratio(totals.revenue, totals.spend),
        "conversion_rate": _ratio(totals.won, totals.leads, 100),
    }


# =============================================================================
# Range filters
# =============================================================================

def filter_expenses(
    expenses: Iterable[MarketingExpenseLog], start: date, end: date
) -> list[MarketingExpenseLog]:
    """Expenses whose whole date span lies inside [start, end]."""
    return [e for e in expenses if e.date_start >= start and e.date_end <= end]


def filter_leads(leads: Iterable[MarketingLead], start: date, end: date) -> list[MarketingLead]:
    """Leads created from start 00:00 through end 23:59:59 (UTC)."""
    lower, upper = start_of_day(start), end_of_day(end)
    return [lead for lead in leads if lower <= as_utc(lead.created_at) <= upper]


# =============================================================================
# Aggregations
# =============================================================================

def compute_summary(
    expenses: Sequence[MarketingExpenseLog], leads: Sequence[MarketingLead]
) -> KpiSummary:
    totals = _Totals()
    for expense in expenses:
        totals.add_expense(expense)
    for lead in leads:
        totals.add_lead(lead)
    return KpiSummary(**_kpis(totals))


def _rows(groups: dict[str, _Totals]) -> list[BreakdownRow]:
    rows = [BreakdownRow(key=key, **_kpis(totals)) for key, totals in groups.items()]
    # stable: equal spend keeps first-seen order
    return sorted(rows, key=lambda row: row.spend, reverse=True)


def breakdown_by_channel(
    expenses: Sequence[MarketingExpenseLog], leads: Sequence[MarketingLead]
) -> list[BreakdownRow]:
    """Spend by expense channel; leads without a channel are left out."""
    groups: dict[str, _Totals] = {}
    for expense in expenses:
        groups.setdefault(expense.channel, _Totals()).add_expense(expense)
    for lead in leads:
        if lead.channel:
            groups.setdefault(lead.channel, _Totals()).add_lead(lead)
    return _rows(groups)


def geo_key(region: str | None, country: str | None) -> str:
    """'region, country', the country alone, or 'Unknown'."""
    if region and country:
        return f"{region}, {country}"
    return country or region or UNKNOWN_KEY


def breakdown_by_geo(
    expenses: Sequence[MarketingExpenseLog], leads: Sequence[MarketingLead]
) -> list[BreakdownRow]:
    groups: dict[str, _Totals] = {}
    for expense in expenses:
        groups.setdefault(geo_key(expense.region, expense.country), _Totals()).add_expense(expense)
    for lead in leads:
        groups.setdefault(geo_key(lead.region, lead.country), _Totals()).add_lead(lead)
    return _rows(groups)


def _normalize_name(value: str | None) -> str:
    return re.sub(r"[_-]", " ", (value or "").lower()).strip()


def breakdown_by_campaign(
    expenses: Sequence[MarketingExpenseLog],
    leads: Sequence[MarketingLead],
    campaigns: Sequence[MarketingCampaign],
) -> list[BreakdownRow]:
    """
    Leads grouped by attributed campaign.

    Spend joins on the expense's campaign_name matching the campaign
    name or utm_campaign (normalized); unmatched spend is not shown.
    """
    names = {c.id: c.name for c in campaigns}
    lookup: dict[str, str] = {}
    for campaign in campaigns:
        lookup.setdefault(_normalize_name(campaign.name), campaign.name)
        if campaign.utm_campaign:
            lookup.setdefault(_normalize_name(campaign.utm_campaign), campaign.name)

    groups: dict[str, _Totals] = {}
    for lead in leads:
        key = names.get(lead.campaign_id, UNATTRIBUTED_KEY) if lead.campaign_id else UNATTRIBUTED_KEY
        groups.setdefault(key, _Totals()).add_lead(lead)
    for expense in expenses:
        key = lookup.get(_normalize_name(expense.campaign_name))
        if key:
            groups.setdefault(key, _Totals()).add_expense(expense)
    return _rows(groups)


def build_metrics(
    expenses: Sequence[MarketingExpenseLog],
    leads: Sequence[MarketingLead],
    campaigns: Sequence[MarketingCampaign],
    start: date,
    end: date,
) -> MetricsResponse:
    """Filter to [start, end] and compute the summary plus every breakdown."""
    in_range_expenses = filter_expenses(expenses, start, end)
    in_range_leads = filter_leads(leads, start, end)
    return MetricsResponse(
        start=start,
        end=end,
        summary=compute_summary(in_range_expenses, in_range_leads),
        by_channel=breakdown_by_channel(in_range_expenses, in_range_leads),
        by_geo=breakdown_by_geo(in_range_expenses, in_range_leads),
        by_campaign=breakdown_by_campaign(in_range_expenses, in_range_leads, campaigns),
    )


# =============================================================================
# Loaders & reports
# =============================================================================

def load_metrics(db: Session, project_id: UUID, start: date, end: date) -> MetricsResponse:
    if end < start:
        raise ValueError("End date must be on or after start date")
    expenses = db.query(MarketingExpenseLog).filter(
        MarketingExpenseLog.project_id == project_id,
        MarketingExpenseLog.date_start >= start,
        MarketingExpenseLog.date_end <= end,
    ).all()
    leads = db.query(MarketingLead).filter(
        MarketingLead.project_id == project_id,
    ).order_by(MarketingLead.created_at.asc()).all()
    campaigns = db.query(MarketingCampaign).filter(
        MarketingCampaign.project_id == project_id
    ).order_by(MarketingCampaign.created_at.asc()).all()
    return build_metrics(expenses, leads, campaigns, start, end)


def create_report(
    db: Session,
    org_id: UUID,
    project_id: UUID,
    user_id: UUID,
    data: ReportCreate,
) -> MarketingReport:
    metrics = load_metrics(db, project_id, data.start, data.end)
    report = MarketingReport(
        organization_id=org_id,
        project_id=project_id,
        title=data.title.strip(),
        date_start=data.start,
        date_end=data.end,
        snapshot=metrics.model_dump(mode="json"),
        public_token=generate_public_token(),
        created_by_user_id=user_id,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    return report


def list_reports(db: Session, project_id: UUID) -> list[MarketingReport]:
    return db.query(MarketingReport).filter(
        MarketingReport.project_id == project_id
    ).order_by(MarketingReport.created_at.desc()).all()


def get_public_report(db: Session, token: str) -> MarketingReport | None:
    return db.query(MarketingReport).filter(MarketingReport.public_token == token).first()


def delete_report(db: Session, report: MarketingReport) -> None:
    db.delete(report)
    db.commit()
