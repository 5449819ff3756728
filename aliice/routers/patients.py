"""Patients API endpoints, including the intake form."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db, require_csrf_header
from aliice.db.enums import PatientSource
from aliice.schemas.auth import UserSession
from aliice.schemas.patient import (
    IntakeLookup,
    IntakeLookupResponse,
    IntakeSubmit,
    PatientCreate,
    PatientRead,
    PatientUpdate,
)
from aliice.services import intake_service, patient_service

router = APIRouter(prefix="/patients", tags=["patients"])


def _get_patient_or_404(db: Session, session: UserSession, patient_id: UUID):
    patient = patient_service.get_patient(db, session.org_id, patient_id)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@router.get("", response_model=list[PatientRead])
def list_patients(
    source: PatientSource | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return patient_service.list_patients(db, session.org_id, source, limit, offset)


@router.post(
    "",
    response_model=PatientRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_patient(
    data: PatientCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return patient_service.create_patient(db, session.org_id, data, session.user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/intake",
    response_model=PatientRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def submit_intake(
    data: IntakeSubmit,
    response: Response,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Intake form. Updates the patient matched by email or phone (200), else creates one (201)."""
    try:
        patient, created = intake_service.submit(db, session.org_id, data, session.user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not created:
        response.status_code = status.HTTP_200_OK
    return patient


@router.post(
    "/intake/lookup",
    response_model=IntakeLookupResponse,
    dependencies=[Depends(require_csrf_header)],
)
def lookup_intake(
    data: IntakeLookup,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Prefill the intake form from an existing patient."""
    try:
        patient = intake_service.lookup(db, session.org_id, data.email, data.phone)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return IntakeLookupResponse(patient=PatientRead.model_validate(patient) if patient else None)


@router.get("/{patient_id}", response_model=PatientRead)
def get_patient(
    patient_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_patient_or_404(db, session, patient_id)


@router.patch(
    "/{patient_id}",
    response_model=PatientRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_patient(
    patient_id: UUID,
    data: PatientUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    patient = _get_patient_or_404(db, session, patient_id)
    try:
        return patient_service.update_patient(db, patient, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_patient(
    patient_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    patient = _get_patient_or_404(db, session, patient_id)
    patient_service.delete_patient(db, patient)
