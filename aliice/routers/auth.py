"""Session endpoints and the organization user roster."""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from aliice.core.deps import COOKIE_NAME, get_current_session, get_db, require_csrf_header
from aliice.schemas.auth import MeResponse, UserListItem, UserSession
from aliice.services import user_service

router = APIRouter()


@router.get("/auth/me", response_model=MeResponse)
def get_me(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Current user with organization and role.

    Used by the frontend to bootstrap auth state on page load.
    """
    user = user_service.get_user(db, session.user_id)
    org = user_service.get_org(db, session.org_id)
    if not user or not org:
        raise HTTPException(status_code=404, detail="User not found")

    return MeResponse(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        avatar_url=user.avatar_url,
        org_id=org.id,
        org_name=org.name,
        role=session.role,
    )


@router.post("/auth/logout", dependencies=[Depends(require_csrf_header)])
def logout(
    response: Response,
    session: UserSession = Depends(get_current_session),
):
    """Clear the session cookie."""
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"status": "logged_out"}


@router.get("/api/users/list", response_model=list[UserListItem])
def list_users(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Active users of the caller's organization, by full name."""
    return user_service.list_users(db, session.org_id)
