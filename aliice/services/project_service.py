"""Project service - company engagements and pipelines."""

from uuid import UUID

from sqlalchemy.orm import Session

from aliice.db.models import Company, Contact, Project
from aliice.schemas.crm import ProjectCreate, ProjectUpdate

PROCESSED_STATUS = "Processed"


def list_projects(
    db: Session,
    org_id: UUID,
    company_id: UUID | None = None,
    status: str | None = None,
) -> list[Project]:
    query = db.query(Project).filter(Project.organization_id == org_id)
    if company_id:
        query = query.filter(Project.company_id == company_id)
    if status:
        query = query.filter(Project.status == status)
    return query.order_by(Project.created_at.desc()).all()


def get_project(db: Session, org_id: UUID, project_id: UUID) -> Project | None:
    return db.query(Project).filter(
        Project.id == project_id,
        Project.organization_id == org_id,
    ).first()


def _check_links(db: Session, org_id: UUID, company_id: UUID | None, contact_id: UUID | None) -> None:
    if company_id is not None:
        exists = db.query(Company.id).filter(
            Company.id == company_id, Company.organization_id == org_id
        ).first()
        if not exists:
            raise ValueError("Company not found")
    if contact_id is not None:
        exists = db.query(Contact.id).filter(
            Contact.id == contact_id, Contact.organization_id == org_id
        ).first()
        if not exists:
            raise ValueError("Primary contact not found")


def _normalize(project: Project) -> None:
    """Outcome only applies to processed projects."""
    if project.status != PROCESSED_STATUS:
        project.processed_outcome = None


def _check_value(value: float | None) -> None:
    if value is not None and value < 0:
        raise ValueError("Project value must be zero or greater.")


def create_project(db: Session, org_id: UUID, data: ProjectCreate) -> Project:
    if not data.name.strip() or not data.project_type.strip():
        raise ValueError("Project name and type are required.")
    _check_value(data.value)
    _check_links(db, org_id, data.company_id, data.primary_contact_id)

    project = Project(organization_id=org_id, **data.model_dump())
    project.name = project.name.strip()
    _normalize(project)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


def update_project(db: Session, org_id: UUID, project: Project, data: ProjectUpdate) -> Project:
    updates = data.model_dump(exclude_unset=True)
    for key in ("name", "project_type"):
        if key in updates and not (updates[key] or "").strip():
            raise ValueError("Project name and type are required.")
    _check_value(updates.get("value"))
    _check_links(db, org_id, updates.get("company_id"), updates.get("primary_contact_id"))
    for field, value in updates.items():
        setattr(project, field, value)
    _normalize(project)
    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, project: Project) -> None:
    db.delete(project)
    db.commit()
