"""Patient intake form: upsert by email/phone with a notes snapshot per submission."""

import json
import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from aliice.core.time_utils import utcnow
from aliice.db.enums import PatientSource
from aliice.db.models import Patient
from aliice.schemas.patient import IntakeSubmit

logger = logging.getLogger(__name__)

NOTES_PREFIX = "[Lead form]"
PROFILE_FIELDS = ("gender", "dob", "nationality", "address")


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def find_existing(
    db: Session,
    org_id: UUID,
    email: str | None,
    phone: str | None,
) -> Patient | None:
    """Case-insensitive email match first, then exact phone."""
    email = _clean(email)
    phone = _clean(phone)
    base = db.query(Patient).filter(Patient.organization_id == org_id)
    if email:
        patient = base.filter(func.lower(Patient.email) == email.lower()).order_by(
            Patient.created_at.asc()
        ).first()
        if patient:
            return patient
    if phone:
        return base.filter(Patient.phone == phone).order_by(Patient.created_at.asc()).first()
    return None


def lookup(db: Session, org_id: UUID, email: str | None, phone: str | None) -> Patient | None:
    if not _clean(email) and not _clean(phone):
        raise ValueError("Email or phone is required.")
    return find_existing(db, org_id, email, phone)


def _snapshot_entry(data: IntakeSubmit) -> str:
    snapshot = {
        "submitted_at": utcnow().isoformat(),
        "language": data.language,
        "contact_preference": data.contact_preference,
        "health": data.health,
    }
    return f"{NOTES_PREFIX} {json.dumps(snapshot, indent=2, default=str)}"


def submit(
    db: Session,
    org_id: UUID,
    data: IntakeSubmit,
    submitted_by_user_id: UUID | None = None,
) -> tuple[Patient, bool]:
    """
    Create or update the patient behind an intake submission.

    Returns (patient, created). An existing patient keeps its source and
    gets the submitted profile fields plus a new notes entry.
    """
    if not data.consent_accepted:
        raise ValueError("Consent is required")

    first_name = data.first_name.strip()
    last_name = data.last_name.strip()
    if not first_name or not last_name:
        raise ValueError("First and last name are required.")

    email = _clean(data.email)
    phone = _clean(data.phone)
    if not email and not phone:
        raise ValueError("Email or phone is required.")
    if email:
        email = email.lower()

    patient = find_existing(db, org_id, email, phone)
    created = patient is None
    if created:
        patient = Patient(
            organization_id=org_id,
            source=PatientSource.MANUAL.value,
            created_by_user_id=submitted_by_user_id,
        )
        db.add(patient)

    patient.first_name = first_name
    patient.last_name = last_name
    if email:
        patient.email = email
    if phone:
        patient.phone = phone
    for field in PROFILE_FIELDS:
        value = getattr(data, field)
        if value is not None:
            setattr(patient, field, value)

    patient.notes = f"{patient.notes or ''}\n\n{_snapshot_entry(data)}".strip()

    db.commit()
    db.refresh(patient)
    logger.info(
        "Intake submitted",
        extra={"org_id": str(org_id), "patient_id": str(patient.id), "created": created},
    )
    return patient, created
