"""Offline conversion exports for ad platforms (CSV files only, no API upload)."""

import csv
import io
from datetime import datetime, timedelta
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from aliice.core.security import sha256_hex
from aliice.core.time_utils import as_utc, utcnow
from aliice.db.enums import DealStatus
from aliice.db.models import MarketingLead

EXPORT_CURRENCY = "AED"
# Conversion exports cover this window unless the caller passes since
DEFAULT_LOOKBACK_DAYS = 30

GOOGLE_HEADERS = [
    "Google Click ID",
    "Conversion Name",
    "Conversion Time",
    "Conversion Value",
    "Conversion Currency",
]
GOOGLE_CONVERSION_NAME = "Lead Conversion"

META_HEADERS = ["fbc", "event_name", "event_time", "value", "currency", "email"]
META_EVENT_NAME = "Purchase"

AUDIENCE_HEADERS = ["email"]


def hash_email(email: str | None) -> str:
    """SHA-256 of the trimmed, lowercased address; "" when absent."""
    if not email or not email.strip():
        return ""
    return sha256_hex(email.strip().lower())


def _value(lead: MarketingLead) -> str:
    return f"{float(lead.deal_value or 0):g}"


def _to_csv(headers: list[str], rows: Iterable[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def eligible_conversions(
    leads: Iterable[MarketingLead], since: datetime | None = None
) -> list[MarketingLead]:
    """Won leads with a conversion time, optionally no older than since."""
    lower = as_utc(since) if since else None
    result = []
    for lead in leads:
        if lead.deal_status != DealStatus.WON.value or lead.converted_at is None:
            continue
        if lower is not None and as_utc(lead.converted_at) < lower:
            continue
        result.append(lead)
    return result


def google_csv(leads: Sequence[MarketingLead]) -> str:
    rows = [
        [
            lead.gclid,
            GOOGLE_CONVERSION_NAME,
            as_utc(lead.converted_at).strftime("%Y-%m-%d %H:%M:%S+0000"),
            _value(lead),
            EXPORT_CURRENCY,
        ]
        for lead in leads
        if lead.gclid
    ]
    return _to_csv(GOOGLE_HEADERS, rows)


def meta_csv(leads: Sequence[MarketingLead]) -> str:
    rows = [
        [
            lead.fbclid,
            META_EVENT_NAME,
            str(int(as_utc(lead.converted_at).timestamp())),
            _value(lead),
            EXPORT_CURRENCY,
            hash_email(lead.email),
        ]
        for lead in leads
        if lead.fbclid
    ]
    return _to_csv(META_HEADERS, rows)


def audience_csv(leads: Sequence[MarketingLead]) -> str:
    rows = [[hash_email(lead.email)] for lead in leads if lead.email and lead.email.strip()]
    return _to_csv(AUDIENCE_HEADERS, rows)


# =============================================================================
# Loaders
# =============================================================================

def _project_leads(db: Session, project_id: UUID) -> list[MarketingLead]:
    return db.query(MarketingLead).filter(
        MarketingLead.project_id == project_id
    ).order_by(MarketingLead.created_at.asc()).all()


def default_since() -> datetime:
    return utcnow() - timedelta(days=DEFAULT_LOOKBACK_DAYS)


def export_google(db: Session, project_id: UUID, since: datetime | None = None) -> str:
    return google_csv(eligible_conversions(_project_leads(db, project_id), since or default_since()))


def export_meta(db: Session, project_id: UUID, since: datetime | None = None) -> str:
    return meta_csv(eligible_conversions(_project_leads(db, project_id), since or default_since()))


def export_audience(db: Session, project_id: UUID) -> str:
    return audience_csv(_project_leads(db, project_id))
