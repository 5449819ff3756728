"""Global search endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db
from aliice.schemas.auth import UserSession
from aliice.schemas.search import SearchResponse
from aliice.services import search_service

router = APIRouter(tags=["search"])


@router.get("/search", response_model=SearchResponse)
def search(
    q: str = "",
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Grouped hits for the command palette. Short queries return empty groups."""
    return search_service.search(db, session.org_id, q)
