"""Companies API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db, require_csrf_header
from aliice.schemas.auth import UserSession
from aliice.schemas.crm import CompanyCreate, CompanyRead, CompanyUpdate, ContactRead, ProjectRead
from aliice.services import company_service

router = APIRouter(prefix="/companies", tags=["companies"])


def _get_company_or_404(db: Session, session: UserSession, company_id: UUID):
    company = company_service.get_company(db, session.org_id, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.get("", response_model=list[CompanyRead])
def list_companies(
    q: str | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Companies ordered by name; q filters on name."""
    return company_service.list_companies(db, session.org_id, q)


@router.post(
    "",
    response_model=CompanyRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_company(
    data: CompanyCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return company_service.create_company(db, session.org_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{company_id}", response_model=CompanyRead)
def get_company(
    company_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_company_or_404(db, session, company_id)


@router.patch(
    "/{company_id}",
    response_model=CompanyRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_company(
    company_id: UUID,
    data: CompanyUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Partial update; only fields present in the payload change."""
    company = _get_company_or_404(db, session, company_id)
    try:
        return company_service.update_company(db, company, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/{company_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_company(
    company_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    company = _get_company_or_404(db, session, company_id)
    company_service.delete_company(db, company)


@router.get("/{company_id}/contacts", response_model=list[ContactRead])
def list_company_contacts(
    company_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    company = _get_company_or_404(db, session, company_id)
    return company_service.list_company_contacts(db, company)


@router.get("/{company_id}/projects", response_model=list[ProjectRead])
def list_company_projects(
    company_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    company = _get_company_or_404(db, session, company_id)
    return company_service.list_company_projects(db, company)
