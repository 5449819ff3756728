"""Tasks API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db, require_csrf_header
from aliice.db.enums import TaskStatus
from aliice.schemas.auth import UserSession
from aliice.schemas.patient import TaskCreate, TaskRead, TaskStats, TaskUpdate
from aliice.services import task_service

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _get_task_or_404(db: Session, session: UserSession, task_id: UUID):
    task = task_service.get_task(db, session.org_id, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("", response_model=list[TaskRead])
def list_tasks(
    patient_id: UUID | None = None,
    project_id: UUID | None = None,
    task_status: TaskStatus | None = Query(None, alias="status"),
    assigned_to_me: bool = False,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    tasks = task_service.list_tasks(
        db,
        session.org_id,
        patient_id=patient_id,
        project_id=project_id,
        status=task_status,
        assigned_user_id=session.user_id if assigned_to_me else None,
    )
    return [task_service.to_task_read(t) for t in tasks]


@router.get("/stats", response_model=TaskStats)
def get_task_stats(
    assigned_to_me: bool = False,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Counts by status plus overdue (past activity_date, not completed)."""
    return task_service.get_stats(
        db, session.org_id, session.user_id if assigned_to_me else None
    )


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_task(
    data: TaskCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        task = task_service.create_task(db, session.org_id, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return task_service.to_task_read(task)


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return task_service.to_task_read(_get_task_or_404(db, session, task_id))


@router.patch(
    "/{task_id}",
    response_model=TaskRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_task(
    task_id: UUID,
    data: TaskUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task = _get_task_or_404(db, session, task_id)
    try:
        task = task_service.update_task(db, session.org_id, task, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return task_service.to_task_read(task)


@router.post(
    "/{task_id}/read",
    response_model=TaskRead,
    dependencies=[Depends(require_csrf_header)],
)
def mark_task_read(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Read receipt; only the assignee's call is recorded."""
    task = _get_task_or_404(db, session, task_id)
    return task_service.to_task_read(task_service.mark_read(db, task, session.user_id))


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_task(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task = _get_task_or_404(db, session, task_id)
    task_service.delete_task(db, task)
