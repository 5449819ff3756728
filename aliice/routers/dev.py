"""Development-only endpoints for seeding and impersonation."""

from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from sqlalchemy.orm import Session

from aliice.core.config import settings
from aliice.core.deps import COOKIE_NAME, get_db
from aliice.core.security import create_session_token
from aliice.db.enums import Role
from aliice.db.models import Membership, Organization, User

router = APIRouter()

SEED_ORG_SLUG = "aliice-dev"
SEED_USERS = [
    ("admin@aliice.test", "Dev Admin", Role.ADMIN),
    ("staff@aliice.test", "Dev Staff", Role.STAFF),
]


def _verify_dev_secret(x_dev_secret: str = Header(...)):
    """Dev routes are mounted only in dev and still require X-Dev-Secret."""
    if x_dev_secret != settings.DEV_SECRET:
        raise HTTPException(status_code=403, detail="Invalid dev secret")


@router.post("/seed", dependencies=[Depends(_verify_dev_secret)])
def seed_test_data(db: Session = Depends(get_db)):
    """
    Create a dev organization with one admin and one staff user.

    Idempotent: returns the existing org if already seeded.
    """
    existing = db.query(Organization).filter(Organization.slug == SEED_ORG_SLUG).first()
    if existing:
        return {"status": "already_seeded", "org_id": str(existing.id)}

    org = Organization(name="Aliice Dev", slug=SEED_ORG_SLUG)
    db.add(org)
    db.flush()

    created_users = []
    for email, name, role in SEED_USERS:
        user = User(email=email, full_name=name)
        db.add(user)
        db.flush()
        db.add(Membership(user_id=user.id, organization_id=org.id, role=role.value))
        created_users.append({"email": email, "user_id": str(user.id), "role": role.value})

    db.commit()
    return {
        "status": "seeded",
        "org_id": str(org.id),
        "org_slug": SEED_ORG_SLUG,
        "users": created_users,
    }


@router.post("/login-as/{user_id}", dependencies=[Depends(_verify_dev_secret)])
def login_as(
    user_id: UUID,
    response: Response,
    db: Session = Depends(get_db),
):
    """Set the session cookie for a seeded user without going through sign-in."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="User is disabled")

    membership = db.query(Membership).filter(Membership.user_id == user.id).first()
    if not membership:
        raise HTTPException(status_code=400, detail="User has no membership")

    token = create_session_token(
        user.id,
        membership.organization_id,
        membership.role,
        user.token_version,
    )
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
    return {
        "status": "logged_in",
        "user_id": str(user.id),
        "email": user.email,
        "role": membership.role,
        "org_id": str(membership.organization_id),
    }
