"""Global search across the organization's records."""

from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from aliice.db.models import Company, Contact, DanoteBoard, Patient, Project
from aliice.schemas.search import SearchHit, SearchResponse

MIN_QUERY_LENGTH = 2
GROUP_LIMIT = 8


def sanitize_query(q: str | None) -> str:
    """Trim and strip LIKE wildcards."""
    return (q or "").replace("%", "").replace("_", "").strip()


def _full_name(first: str | None, last: str | None) -> str:
    return " ".join(part for part in (first, last) if part)


def search(db: Session, org_id: UUID, q: str | None) -> SearchResponse:
    """Up to GROUP_LIMIT case-insensitive substring hits per entity type."""
    term = sanitize_query(q)
    if len(term) < MIN_QUERY_LENGTH:
        return SearchResponse(query=term)
    pattern = f"%{term}%"

    companies = db.query(Company).filter(
        Company.organization_id == org_id,
        or_(
            Company.name.ilike(pattern),
            Company.email.ilike(pattern),
            Company.industry.ilike(pattern),
        ),
    ).order_by(Company.name.asc()).limit(GROUP_LIMIT).all()

    contacts = db.query(Contact).filter(
        Contact.organization_id == org_id,
        or_(
            Contact.first_name.ilike(pattern),
            Contact.last_name.ilike(pattern),
            Contact.email.ilike(pattern),
        ),
    ).order_by(Contact.first_name.asc()).limit(GROUP_LIMIT).all()

    projects = db.query(Project).filter(
        Project.organization_id == org_id,
        or_(Project.name.ilike(pattern), Project.description.ilike(pattern)),
    ).order_by(Project.name.asc()).limit(GROUP_LIMIT).all()

    patients = db.query(Patient).filter(
        Patient.organization_id == org_id,
        or_(
            Patient.first_name.ilike(pattern),
            Patient.last_name.ilike(pattern),
            Patient.email.ilike(pattern),
            Patient.phone.ilike(pattern),
        ),
    ).order_by(Patient.first_name.asc()).limit(GROUP_LIMIT).all()

    boards = db.query(DanoteBoard).filter(
        DanoteBoard.organization_id == org_id,
        DanoteBoard.name.ilike(pattern),
    ).order_by(DanoteBoard.name.asc()).limit(GROUP_LIMIT).all()

    return SearchResponse(
        query=term,
        companies=[SearchHit(id=c.id, title=c.name, subtitle=c.industry or c.email) for c in companies],
        contacts=[
            SearchHit(id=c.id, title=_full_name(c.first_name, c.last_name), subtitle=c.email)
            for c in contacts
        ],
        projects=[SearchHit(id=p.id, title=p.name, subtitle=p.project_type) for p in projects],
        patients=[
            SearchHit(id=p.id, title=_full_name(p.first_name, p.last_name), subtitle=p.email or p.phone)
            for p in patients
        ],
        boards=[SearchHit(id=b.id, title=b.name, subtitle=b.description) for b in boards],
    )
