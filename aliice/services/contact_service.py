"""Contact service - people attached to companies."""

from uuid import UUID

from sqlalchemy.orm import Session

from aliice.db.models import Contact
from aliice.schemas.crm import ContactCreate, ContactUpdate

NAME_REQUIRED = "First and last name are required."


def _clean_name(value: str | None) -> str:
    return (value or "").strip()


def get_contact(db: Session, org_id: UUID, contact_id: UUID) -> Contact | None:
    return db.query(Contact).filter(
        Contact.id == contact_id,
        Contact.organization_id == org_id,
    ).first()


def _demote_other_primaries(db: Session, contact: Contact) -> None:
    db.query(Contact).filter(
        Contact.company_id == contact.company_id,
        Contact.id != contact.id,
        Contact.is_primary.is_(True),
    ).update({Contact.is_primary: False}, synchronize_session="fetch")


def create_contact(db: Session, org_id: UUID, data: ContactCreate) -> Contact:
    """
    Create a contact.

    Raises:
        ValueError: first or last name blank (nothing is inserted)
    """
    first_name = _clean_name(data.first_name)
    last_name = _clean_name(data.last_name)
    if not first_name or not last_name:
        raise ValueError(NAME_REQUIRED)

    values = data.model_dump(exclude={"first_name", "last_name"})
    contact = Contact(
        organization_id=org_id,
        first_name=first_name,
        last_name=last_name,
        **values,
    )
    db.add(contact)
    db.flush()
    if contact.is_primary:
        _demote_other_primaries(db, contact)
    db.commit()
    db.refresh(contact)
    return contact


def update_contact(db: Session, contact: Contact, data: ContactUpdate) -> Contact:
    updates = data.model_dump(exclude_unset=True)
    for key in ("first_name", "last_name"):
        if key in updates:
            updates[key] = _clean_name(updates[key])
            if not updates[key]:
                raise ValueError(NAME_REQUIRED)
    for field, value in updates.items():
        setattr(contact, field, value)
    if updates.get("is_primary"):
        _demote_other_primaries(db, contact)
    db.commit()
    db.refresh(contact)
    return contact


def delete_contact(db: Session, contact: Contact) -> None:
    db.delete(contact)
    db.commit()
