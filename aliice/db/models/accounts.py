"""Account client models: billing profile, documents, ad-hoc ledger."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aliice.core.time_utils import utcnow
from aliice.db.base import Base
from aliice.db.enums import AdhocStatus, DocumentType
from aliice.db.types import JSONType, Money


class AccountClient(Base):
    """Retained client with the fee schedule used for statements of account."""

    __tablename__ = "account_clients"
    __table_args__ = (
        Index("idx_account_clients_org_name", "organization_id", "client_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True)
    client_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    client_category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    client_since: Mapped[date | None] = mapped_column(Date, nullable=True)
    contract_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    contract_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    services_signed: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    contract_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    retainer_fee: Mapped[float | None] = mapped_column(Money, nullable=True)
    service_based_fee: Mapped[float | None] = mapped_column(Money, nullable=True)
    adhoc_fee: Mapped[float | None] = mapped_column(Money, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="AED", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    documents: Mapped[list[AccountDocument]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )
    adhoc_requirements: Mapped[list[AccountAdhocRequirement]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )


class AccountDocument(Base):
    """Uploaded contract or invoice file. The bytes live in object storage."""

    __tablename__ = "account_documents"
    __table_args__ = (
        Index("idx_account_documents_client", "client_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("account_clients.id", ondelete="CASCADE"), nullable=False
    )
    document_type: Mapped[str] = mapped_column(
        String(20), default=DocumentType.OTHER.value, nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    checksum_sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    uploaded_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    client: Mapped[AccountClient] = relationship(back_populates="documents")


class AccountAdhocRequirement(Base):
    """Itemized ad-hoc work billed on top of the retainer."""

    __tablename__ = "account_adhoc_requirements"
    __table_args__ = (
        Index("idx_account_adhoc_client", "client_id", "date_requested"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("account_clients.id", ondelete="CASCADE"), nullable=False
    )
    date_requested: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    service_date_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    service_date_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    amount: Mapped[float | None] = mapped_column(Money, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=AdhocStatus.PENDING.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    client: Mapped[AccountClient] = relationship(back_populates="adhoc_requirements")
