"""Account (client billing) enums."""

from enum import Enum


class DocumentType(str, Enum):
    MOA = "moa"
    SOW = "sow"
    INVOICE = "invoice"
    ROADMAP = "roadmap"
    OTHER = "other"


class AdhocStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class SoaFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
    PDF = "pdf"
