"""Account clients: billing profiles, documents, ad-hoc work and statements of account."""

import io
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session

from aliice.core.config import settings
from aliice.core.time_utils import utcnow
from aliice.db.enums import DocumentType
from aliice.db.models import AccountAdhocRequirement, AccountClient, AccountDocument, Company
from aliice.schemas.account import (
    AccountClientCreate,
    AccountClientUpdate,
    AdhocCreate,
    AdhocRead,
    AdhocUpdate,
)
from aliice.services import storage_service

logger = logging.getLogger(__name__)


# =============================================================================
# Clients
# =============================================================================

def list_clients(db: Session, org_id: uuid.UUID) -> list[AccountClient]:
    return db.query(AccountClient).filter(
        AccountClient.organization_id == org_id
    ).order_by(AccountClient.client_name.asc()).all()


def get_client(db: Session, org_id: uuid.UUID, client_id: uuid.UUID) -> AccountClient | None:
    return db.query(AccountClient).filter(
        AccountClient.id == client_id,
        AccountClient.organization_id == org_id,
    ).first()


def _check_company(db: Session, org_id: uuid.UUID, company_id: uuid.UUID | None) -> None:
    if company_id is None:
        return
    exists = db.query(Company.id).filter(
        Company.id == company_id,
        Company.organization_id == org_id,
    ).first()
    if not exists:
        raise ValueError("Company not found")


def create_client(db: Session, org_id: uuid.UUID, data: AccountClientCreate) -> AccountClient:
    if not data.client_name.strip():
        raise ValueError("Client name is required")
    _check_company(db, org_id, data.company_id)
    values = data.model_dump(exclude={"currency"})
    values["client_name"] = data.client_name.strip()
    client = AccountClient(
        organization_id=org_id,
        currency=(data.currency or settings.DEFAULT_CURRENCY).upper(),
        **values,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def update_client(
    db: Session, org_id: uuid.UUID, client: AccountClient, data: AccountClientUpdate
) -> AccountClient:
    updates = data.model_dump(exclude_unset=True)
    if "client_name" in updates and not (updates["client_name"] or "").strip():
        raise ValueError("Client name is required")
    if "company_id" in updates:
        _check_company(db, org_id, updates["company_id"])
    if "services_signed" in updates:
        updates["services_signed"] = list(updates["services_signed"] or [])
    if "currency" in updates:
        if updates["currency"] is None:
            updates.pop("currency")
        else:
            updates["currency"] = updates["currency"].upper()
    for field, value in updates.items():
        setattr(client, field, value)
    db.commit()
    db.refresh(client)
    return client


def delete_client(db: Session, client: AccountClient) -> None:
    storage_keys = [doc.storage_key for doc in client.documents]
    db.delete(client)
    db.commit()
    for key in storage_keys:
        storage_service.delete_file(key)


# =============================================================================
# Documents
# =============================================================================

def list_documents(db: Session, client_id: uuid.UUID) -> list[AccountDocument]:
    return db.query(AccountDocument).filter(
        AccountDocument.client_id == client_id
    ).order_by(AccountDocument.created_at.desc()).all()


def get_document(db: Session, client_id: uuid.UUID, document_id: uuid.UUID) -> AccountDocument | None:
    return db.query(AccountDocument).filter(
        AccountDocument.id == document_id,
        AccountDocument.client_id == client_id,
    ).first()


def get_document_by_storage_key(
    db: Session, org_id: uuid.UUID, storage_key: str
) -> AccountDocument | None:
    return db.query(AccountDocument).join(
        AccountClient, AccountClient.id == AccountDocument.client_id
    ).filter(
        AccountDocument.storage_key == storage_key,
        AccountClient.organization_id == org_id,
    ).first()


def upload_document(
    db: Session,
    org_id: uuid.UUID,
    client: AccountClient,
    user_id: uuid.UUID,
    filename: str,
    content_type: str | None,
    file: BinaryIO,
    file_size: int,
    title: str | None = None,
    document_type: DocumentType = DocumentType.OTHER,
) -> AccountDocument:
    """Validate, store and record an uploaded file."""
    is_valid, error = storage_service.validate_file(filename, file_size)
    if not is_valid:
        raise ValueError(error)

    checksum = storage_service.calculate_checksum(file)
    document_id = uuid.uuid4()
    ext = storage_service.file_extension(filename)
    storage_key = f"{org_id}/accounts/{client.id}/{document_id}.{ext}"
    storage_service.store_file(storage_key, file, content_type)

    document = AccountDocument(
        id=document_id,
        client_id=client.id,
        document_type=document_type.value,
        title=(title or "").strip() or filename,
        file_name=filename[:255],
        file_url=storage_service.public_url(storage_key),
        storage_key=storage_key,
        file_size=file_size,
        mime_type=content_type or "application/octet-stream",
        checksum_sha256=checksum,
        uploaded_by_user_id=user_id,
    )
    db.add(document)
    db.commit()
    db.refresh(document)
    logger.info(
        "Account document uploaded",
        extra={"client_id": str(client.id), "document_id": str(document.id), "size": file_size},
    )
    return document


def delete_document(db: Session, document: AccountDocument) -> None:
    """Remove the row, then the stored bytes (best effort)."""
    storage_key = document.storage_key
    db.delete(document)
    db.commit()
    storage_service.delete_file(storage_key)


# =============================================================================
# Ad-hoc requirements
# =============================================================================

def list_adhoc(db: Session, client_id: uuid.UUID) -> list[AccountAdhocRequirement]:
    return db.query(AccountAdhocRequirement).filter(
        AccountAdhocRequirement.client_id == client_id
    ).order_by(
        AccountAdhocRequirement.date_requested.desc(),
        AccountAdhocRequirement.created_at.desc(),
    ).all()


def get_adhoc(db: Session, client_id: uuid.UUID, adhoc_id: uuid.UUID) -> AccountAdhocRequirement | None:
    return db.query(AccountAdhocRequirement).filter(
        AccountAdhocRequirement.id == adhoc_id,
        AccountAdhocRequirement.client_id == client_id,
    ).first()


def create_adhoc(db: Session, client: AccountClient, data: AdhocCreate) -> AccountAdhocRequirement:
    if not data.description.strip():
        raise ValueError("Description is required")
    if data.service_date_start and data.service_date_end and data.service_date_end < data.service_date_start:
        raise ValueError("Service end date must be on or after start date")
    values = data.model_dump(exclude={"status"})
    values["description"] = data.description.strip()
    item = AccountAdhocRequirement(client_id=client.id, status=data.status.value, **values)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def update_adhoc(db: Session, item: AccountAdhocRequirement, data: AdhocUpdate) -> AccountAdhocRequirement:
    updates = data.model_dump(exclude_unset=True)
    for field in ("date_requested", "description", "status"):
        if field in updates and updates[field] is None:
            updates.pop(field)
    if "status" in updates:
        updates["status"] = updates["status"].value
    for field, value in updates.items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item


def delete_adhoc(db: Session, item: AccountAdhocRequirement) -> None:
    db.delete(item)
    db.commit()


# =============================================================================
# Statement of account
# =============================================================================

@dataclass
class Statement:
    client: AccountClient
    adhoc_items: list[AccountAdhocRequirement]
    generated_at: datetime

    @property
    def retainer(self) -> float:
        return float(self.client.retainer_fee or 0)

    @property
    def service_based(self) -> float:
        return float(self.client.service_based_fee or 0)

    @property
    def adhoc_total(self) -> float:
        return sum(float(item.amount or 0) for item in self.adhoc_items)

    @property
    def total(self) -> float:
        return self.retainer + self.service_based + self.adhoc_total

    @property
    def period(self) -> str:
        return self.generated_at.strftime("%B %Y")

    def filename(self, extension: str) -> str:
        name = re.sub(r"\s+", "_", self.client.client_name)
        return f"SOA_{name}_{self.generated_at.date().isoformat()}.{extension}"


def build_statement(db: Session, client: AccountClient, now: datetime | None = None) -> Statement:
    return Statement(client=client, adhoc_items=list_adhoc(db, client.id), generated_at=now or utcnow())


def _amount(value: float | None) -> str:
    number = float(value or 0)
    return str(int(number)) if number.is_integer() else f"{number:.2f}"


def _service_dates(item: AccountAdhocRequirement) -> str:
    if not item.service_date_start:
        return ""
    end = item.service_date_end.isoformat() if item.service_date_end else ""
    return f"{item.service_date_start.isoformat()} - {end}"


def soa_csv(statement: Statement) -> str:
    lines = [
        f"Statement of Account - {statement.client.client_name}",
        f"Period: {statement.period}",
        f"Generated: {statement.generated_at.date().isoformat()}",
        "",
        "SERVICE BREAKDOWN",
        "Service,Amount",
        f"Retainer Fee,{_amount(statement.retainer)}",
        f"Service Based Fee,{_amount(statement.service_based)}",
        f"Ad-Hoc Total,{_amount(statement.adhoc_total)}",
        f"TOTAL,{_amount(statement.total)}",
        "",
        "AD-HOC REQUIREMENTS",
        "Date Requested,Description,Service Dates,Amount,Status",
    ]
    for item in statement.adhoc_items:
        description = (item.description or "").replace(",", ";")
        lines.append(
            f"{item.date_requested.isoformat()},{description},{_service_dates(item)},"
            f"{_amount(item.amount)},{item.status}"
        )
    return "\n".join(lines)


def soa_json(statement: Statement) -> dict:
    client = statement.client
    return {
        "client": {
            "name": client.client_name,
            "industry": client.industry,
            "contract_type": client.contract_type,
            "client_since": client.client_since.isoformat() if client.client_since else None,
        },
        "period": statement.period,
        "fees": {
            "retainer": statement.retainer,
            "serviceBased": statement.service_based,
            "adhoc": statement.adhoc_total,
            "total": statement.total,
        },
        "adhocItems": [
            AdhocRead.model_validate(item).model_dump(mode="json") for item in statement.adhoc_items
        ],
        "generatedAt": statement.generated_at.isoformat(),
    }


def soa_pdf(statement: Statement) -> bytes:
    """Render the statement as a one-section PDF."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=50,
        leftMargin=50,
        topMargin=50,
        bottomMargin=50,
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "SoaTitle",
        parent=styles["Heading1"],
        fontSize=20,
        spaceAfter=12,
        textColor=colors.HexColor("#1e293b"),
    )
    heading_style = ParagraphStyle(
        "SoaHeading",
        parent=styles["Heading2"],
        fontSize=13,
        spaceBefore=14,
        spaceAfter=8,
        textColor=colors.HexColor("#334155"),
    )
    meta_style = ParagraphStyle(
        "SoaMeta",
        parent=styles["Normal"],
        fontSize=10,
        textColor=colors.HexColor("#64748b"),
    )
    cell_style = ParagraphStyle("SoaCell", parent=styles["Normal"], fontSize=9)
    currency = statement.client.currency

    table_style = TableStyle(
        [
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f1f5f9")),
            ("BOX", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
            ("INNERGRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ]
    )

    elements = [
        Paragraph(f"Statement of Account - {statement.client.client_name}", title_style),
        Paragraph(
            f"Period: {statement.period} | Generated: {statement.generated_at.date().isoformat()}",
            meta_style,
        ),
        Spacer(1, 10),
        Paragraph("Service Breakdown", heading_style),
    ]

    fees = Table(
        [
            ["Service", f"Amount ({currency})"],
            ["Retainer Fee", f"{statement.retainer:,.2f}"],
            ["Service Based Fee", f"{statement.service_based:,.2f}"],
            ["Ad-Hoc Total", f"{statement.adhoc_total:,.2f}"],
            ["TOTAL", f"{statement.total:,.2f}"],
        ],
        colWidths=[3.5 * inch, 2 * inch],
    )
    fees.setStyle(table_style)
    fees.setStyle(TableStyle([
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
    ]))
    elements.append(fees)

    elements.append(Paragraph("Ad-Hoc Requirements", heading_style))
    if statement.adhoc_items:
        rows = [["Date Requested", "Description", "Service Dates", "Amount", "Status"]]
        for item in statement.adhoc_items:
            rows.append([
                item.date_requested.isoformat(),
                Paragraph(item.description or "", cell_style),
                _service_dates(item),
                f"{float(item.amount or 0):,.2f}",
                item.status,
            ])
        adhoc = Table(
            rows,
            colWidths=[1.1 * inch, 2.5 * inch, 1.6 * inch, 0.9 * inch, 0.8 * inch],
            repeatRows=1,
        )
        adhoc.setStyle(table_style)
        elements.append(adhoc)
    else:
        elements.append(Paragraph("No ad-hoc requirements.", meta_style))

    doc.build(elements)
    return buffer.getvalue()
