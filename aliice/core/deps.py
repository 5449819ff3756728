"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from aliice.core.security import decode_session_token
from aliice.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "aliice_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"
BEARER_PREFIX = "Bearer "


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _extract_token(request: Request) -> str | None:
    """Session token from the cookie, or from an Authorization: Bearer header."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith(BEARER_PREFIX):
        return auth_header[len(BEARER_PREFIX):].strip() or None
    return None


def _authenticate(request: Request, db: Session):
    """
    Resolve the session token to (user, org_id).

    Validates:
    - Token exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    from aliice.db.models import User

    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
        user_id = UUID(payload["sub"])
        org_id = UUID(payload["org_id"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    if user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    return user, org_id


def get_current_session(
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Get full session context: user_id, org_id, role.

    This is the PRIMARY auth dependency for most endpoints.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: No membership or unknown role
    """
    from aliice.db.enums import Role
    from aliice.db.models import Membership
    from aliice.schemas.auth import UserSession

    user, org_id = _authenticate(request, db)

    # Sessions are minted per organization; the claim picks the membership
    membership = db.query(Membership).filter(
        Membership.user_id == user.id,
        Membership.organization_id == org_id,
    ).first()

    if not membership:
        raise HTTPException(status_code=403, detail="No organization membership")

    if not Role.has_value(membership.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{membership.role}'. Contact administrator.",
        )

    return UserSession(
        user_id=user.id,
        org_id=membership.organization_id,
        role=Role(membership.role),
        email=user.email,
        full_name=user.full_name,
    )


def get_optional_session(
    request: Request,
    db: Session = Depends(get_db),
):
    """Session context when a token is present, else None (guest endpoints)."""
    if not _extract_token(request):
        return None
    return get_current_session(request, db)


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on cookie-authenticated mutations.

    Bearer-token clients are not exposed to CSRF and skip the check.

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get("Authorization", "").startswith(BEARER_PREFIX):
        return
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
