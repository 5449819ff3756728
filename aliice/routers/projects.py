"""Projects API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db, require_csrf_header
from aliice.schemas.auth import UserSession
from aliice.schemas.crm import ProjectCreate, ProjectRead, ProjectUpdate
from aliice.services import project_service

router = APIRouter(prefix="/projects", tags=["projects"])


def _get_project_or_404(db: Session, session: UserSession, project_id: UUID):
    project = project_service.get_project(db, session.org_id, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.get("", response_model=list[ProjectRead])
def list_projects(
    company_id: UUID | None = None,
    status: str | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return project_service.list_projects(db, session.org_id, company_id, status)


@router.post(
    "",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_project(
    data: ProjectCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return project_service.create_project(db, session.org_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_project_or_404(db, session, project_id)


@router.patch(
    "/{project_id}",
    response_model=ProjectRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    try:
        return project_service.update_project(db, session.org_id, project, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_project(
    project_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, session, project_id)
    project_service.delete_project(db, project)
