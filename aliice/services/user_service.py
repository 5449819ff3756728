"""User roster lookups scoped to an organization."""

from uuid import UUID

from sqlalchemy.orm import Session

from aliice.db.models import Membership, Organization, User


def list_users(db: Session, org_id: UUID) -> list[User]:
    """Active users of the org ordered by full name (mention pickers, assignees)."""
    return (
        db.query(User)
        .join(Membership, Membership.user_id == User.id)
        .filter(
            Membership.organization_id == org_id,
            User.is_active.is_(True),
        )
        .order_by(User.full_name.asc())
        .all()
    )


def get_user(db: Session, user_id: UUID) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_org(db: Session, org_id: UUID) -> Organization | None:
    return db.query(Organization).filter(Organization.id == org_id).first()
