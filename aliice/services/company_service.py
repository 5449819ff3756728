"""Company service - client company profiles."""

from uuid import UUID

import nh3
from sqlalchemy.orm import Session

from aliice.db.models import Company, Contact, Project
from aliice.schemas.crm import CompanyCreate, CompanyUpdate

# Notes are edited in a rich text box
ALLOWED_TAGS = {"p", "br", "strong", "em", "ul", "ol", "li", "a", "blockquote"}
ALLOWED_ATTRIBUTES = {"a": {"href", "target"}}


def sanitize_html(html: str | None) -> str | None:
    """Strip everything but basic rich text markup."""
    if html is None:
        return None
    return nh3.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES)


def list_companies(db: Session, org_id: UUID, q: str | None = None) -> list[Company]:
    query = db.query(Company).filter(Company.organization_id == org_id)
    if q:
        query = query.filter(Company.name.ilike(f"%{q.replace('%', '')}%"))
    return query.order_by(Company.name.asc()).all()


def get_company(db: Session, org_id: UUID, company_id: UUID) -> Company | None:
    return db.query(Company).filter(
        Company.id == company_id,
        Company.organization_id == org_id,
    ).first()


def create_company(db: Session, org_id: UUID, data: CompanyCreate) -> Company:
    values = data.model_dump()
    values["name"] = values["name"].strip()
    values["notes"] = sanitize_html(values.get("notes"))
    company = Company(organization_id=org_id, **values)
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def update_company(db: Session, company: Company, data: CompanyUpdate) -> Company:
    """Apply only the fields the client sent."""
    updates = data.model_dump(exclude_unset=True)
    if "name" in updates:
        if not updates["name"] or not updates["name"].strip():
            raise ValueError("Company name is required.")
        updates["name"] = updates["name"].strip()
    if "notes" in updates:
        updates["notes"] = sanitize_html(updates["notes"])
    for field, value in updates.items():
        setattr(company, field, value)
    db.commit()
    db.refresh(company)
    return company


def delete_company(db: Session, company: Company) -> None:
    db.delete(company)
    db.commit()


def list_company_contacts(db: Session, company: Company) -> list[Contact]:
    """Primary contact first, then oldest first."""
    return db.query(Contact).filter(
        Contact.company_id == company.id,
    ).order_by(Contact.is_primary.desc(), Contact.created_at.asc()).all()


def list_company_projects(db: Session, company: Company) -> list[Project]:
    return db.query(Project).filter(
        Project.company_id == company.id,
    ).order_by(Project.created_at.desc()).all()
