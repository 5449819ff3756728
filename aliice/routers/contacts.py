"""Contacts API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db, require_csrf_header
from aliice.schemas.auth import UserSession
from aliice.schemas.crm import ContactCreate, ContactRead, ContactUpdate
from aliice.services import company_service, contact_service

router = APIRouter(prefix="/contacts", tags=["contacts"])


def _get_contact_or_404(db: Session, session: UserSession, contact_id: UUID):
    contact = contact_service.get_contact(db, session.org_id, contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact


@router.post(
    "",
    response_model=ContactRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_contact(
    data: ContactCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    if not company_service.get_company(db, session.org_id, data.company_id):
        raise HTTPException(status_code=404, detail="Company not found")
    try:
        return contact_service.create_contact(db, session.org_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{contact_id}", response_model=ContactRead)
def get_contact(
    contact_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_contact_or_404(db, session, contact_id)


@router.patch(
    "/{contact_id}",
    response_model=ContactRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_contact(
    contact_id: UUID,
    data: ContactUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    contact = _get_contact_or_404(db, session, contact_id)
    try:
        return contact_service.update_contact(db, contact, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/{contact_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_contact(
    contact_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    contact = _get_contact_or_404(db, session, contact_id)
    contact_service.delete_contact(db, contact)
