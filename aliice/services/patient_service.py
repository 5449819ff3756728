"""Patient service - patient records."""

from uuid import UUID

from sqlalchemy.orm import Session

from aliice.db.enums import PatientSource
from aliice.db.models import Patient
from aliice.schemas.patient import PatientCreate, PatientUpdate


def list_patients(
    db: Session,
    org_id: UUID,
    source: PatientSource | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Patient]:
    query = db.query(Patient).filter(Patient.organization_id == org_id)
    if source:
        query = query.filter(Patient.source == source.value)
    return query.order_by(Patient.created_at.desc()).offset(offset).limit(limit).all()


def get_patient(db: Session, org_id: UUID, patient_id: UUID) -> Patient | None:
    return db.query(Patient).filter(
        Patient.id == patient_id,
        Patient.organization_id == org_id,
    ).first()


def create_patient(
    db: Session,
    org_id: UUID,
    data: PatientCreate,
    created_by_user_id: UUID | None = None,
) -> Patient:
    first_name = data.first_name.strip()
    last_name = data.last_name.strip()
    if not first_name or not last_name:
        raise ValueError("First and last name are required.")

    values = data.model_dump(exclude={"first_name", "last_name", "source"})
    patient = Patient(
        organization_id=org_id,
        first_name=first_name,
        last_name=last_name,
        source=data.source.value,
        created_by_user_id=created_by_user_id,
        **values,
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


def update_patient(db: Session, patient: Patient, data: PatientUpdate) -> Patient:
    updates = data.model_dump(exclude_unset=True)
    for key in ("first_name", "last_name"):
        if key in updates and not (updates[key] or "").strip():
            raise ValueError("First and last name are required.")
    if updates.get("source") is not None:
        updates["source"] = updates["source"].value
    elif "source" in updates:
        updates.pop("source")
    for field, value in updates.items():
        setattr(patient, field, value)
    db.commit()
    db.refresh(patient)
    return patient


def delete_patient(db: Session, patient: Patient) -> None:
    db.delete(patient)
    db.commit()
