"""
CSV import of ad spend exports (Google Ads, Meta, hand-made sheets).

Columns are mapped by header keyword; each row is fingerprinted so that
re-uploading the same export does not double the spend.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from charset_normalizer import from_bytes
from sqlalchemy.orm import Session

from aliice.core.config import settings
from aliice.core.security import sha256_hex
from aliice.db.enums import ImportSource, MarketingChannel
from aliice.db.models import MarketingExpenseLog
from aliice.schemas.marketing import ExpenseImportResult

logger = logging.getLogger(__name__)

UNKNOWN_CAMPAIGN = "Unknown Campaign"
MAX_IMPORT_BYTES = 10 * 1024 * 1024

# Checked in order; the first keyword contained in a header wins.
HEADER_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("date", "day"), "date_start"),
    (("cost", "spend", "amount"), "spend_amount"),
    (("campaign",), "campaign_name"),
    (("click",), "clicks"),
    (("impr",), "impressions"),
    (("conversion",), "conversions"),
    (("channel",), "channel"),
    (("country",), "country"),
    (("region",), "region"),
    (("city",), "city"),
]

DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%d/%m/%Y", "%m-%d-%Y", "%d-%m-%Y", "%b %d, %Y", "%d %b %Y")


@dataclass
class ParsedRow:
    date_start: date
    campaign_name: str
    spend_amount: float
    channel: str
    clicks: int | None = None
    impressions: int | None = None
    conversions: int | None = None
    country: str | None = None
    region: str | None = None
    city: str | None = None

    @property
    def import_hash(self) -> str:
        return sha256_hex(
            f"{self.date_start.isoformat()}|{self.campaign_name}|{self.spend_amount:.2f}|{self.channel}"
        )


# =============================================================================
# Parsing helpers
# =============================================================================

def detect_encoding(content: bytes) -> str:
    """BOM, then strict UTF-8, then charset_normalizer's best guess."""
    if content.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    if content.startswith(b"\xff\xfe"):
        return "utf-16-le"
    if content.startswith(b"\xfe\xff"):
        return "utf-16-be"

    try:
        content.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass

    best = from_bytes(content).best()
    if best:
        return best.encoding
    return "latin-1"


def map_headers(headers: list[str]) -> dict[str, int]:
    """Field name -> column index. Earlier columns win when two match the same field."""
    mapping: dict[str, int] = {}
    for index, header in enumerate(headers):
        h = header.strip().lower()
        for keywords, field in HEADER_KEYWORDS:
            if any(k in h for k in keywords):
                mapping.setdefault(field, index)
                break
    return mapping


def parse_spend(raw: str | None) -> float:
    cleaned = re.sub(r"[^0-9.-]", "", raw or "")
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def parse_int(raw: str | None) -> int | None:
    cleaned = re.sub(r"[^0-9-]", "", (raw or "").split(".")[0])
    try:
        return int(cleaned)
    except ValueError:
        return None


def parse_date(raw: str | None) -> date | None:
    value = (raw or "").strip()
    if not value:
        return None
    if "T" in value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_channel(raw: str | None, default: MarketingChannel) -> str:
    value = re.sub(r"[\s-]+", "_", (raw or "").strip().lower())
    return value if MarketingChannel.has_value(value) else default.value


def _cell(row: list[str], mapping: dict[str, int], field: str) -> str | None:
    index = mapping.get(field)
    if index is None or index >= len(row):
        return None
    return row[index].strip() or None


def parse_rows(text: str, default_channel: MarketingChannel) -> tuple[list[ParsedRow], int]:
    """Rows with a parsable date, plus the count of rows skipped."""
    reader = csv.reader(io.StringIO(text))
    headers = next(reader, None)
    if not headers:
        raise ValueError("CSV file has no header row")
    mapping = map_headers(headers)
    if "date_start" not in mapping:
        raise ValueError("CSV file has no date column")

    parsed: list[ParsedRow] = []
    skipped = 0
    for row in reader:
        if not any(cell.strip() for cell in row):
            continue
        row_date = parse_date(_cell(row, mapping, "date_start"))
        if row_date is None:
            skipped += 1
            continue
        parsed.append(ParsedRow(
            date_start=row_date,
            campaign_name=_cell(row, mapping, "campaign_name") or UNKNOWN_CAMPAIGN,
            spend_amount=parse_spend(_cell(row, mapping, "spend_amount")),
            channel=parse_channel(_cell(row, mapping, "channel"), default_channel),
            clicks=parse_int(_cell(row, mapping, "clicks")),
            impressions=parse_int(_cell(row, mapping, "impressions")),
            conversions=parse_int(_cell(row, mapping, "conversions")),
            country=_cell(row, mapping, "country"),
            region=_cell(row, mapping, "region"),
            city=_cell(row, mapping, "city"),
        ))
    return parsed, skipped


# =============================================================================
# Import
# =============================================================================

def import_expenses(
    db: Session,
    org_id: UUID,
    project_id: UUID,
    filename: str,
    content: bytes,
    default_channel: MarketingChannel = MarketingChannel.OTHER,
) -> ExpenseImportResult:
    """Insert every new row; rows already imported for this project count as duplicates."""
    if not content:
        raise ValueError("File is empty")
    if len(content) > MAX_IMPORT_BYTES:
        raise ValueError("File exceeds 10 MB limit")

    text = content.decode(detect_encoding(content), errors="replace")
    rows, skipped = parse_rows(text, default_channel)

    existing = {
        h for (h,) in db.query(MarketingExpenseLog.import_hash).filter(
            MarketingExpenseLog.project_id == project_id,
            MarketingExpenseLog.import_hash.isnot(None),
        ).all()
    }

    imported = 0
    duplicates = 0
    for row in rows:
        row_hash = row.import_hash
        if row_hash in existing:
            duplicates += 1
            continue
        existing.add(row_hash)
        db.add(MarketingExpenseLog(
            organization_id=org_id,
            project_id=project_id,
            date_start=row.date_start,
            date_end=row.date_start,
            channel=row.channel,
            campaign_name=row.campaign_name,
            spend_amount=row.spend_amount,
            currency=settings.DEFAULT_CURRENCY,
            manual_clicks=row.clicks,
            manual_impressions=row.impressions,
            manual_conversions=row.conversions,
            import_source=ImportSource.CSV.value,
            import_filename=filename[:255],
            import_hash=row_hash,
            country=row.country,
            region=row.region,
            city=row.city,
        ))
        imported += 1

    db.commit()
    logger.info(
        "Expense import finished",
        extra={
            "project_id": str(project_id),
            "imported": imported,
            "duplicates": duplicates,
            "skipped": skipped,
        },
    )
    return ExpenseImportResult(imported=imported, duplicates=duplicates, skipped=skipped)
