"""Task service - to-dos linked to patients or projects."""

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from aliice.core.time_utils import as_utc, utcnow
from aliice.db.enums import TaskStatus
from aliice.db.models import Membership, Patient, Project, Task
from aliice.schemas.patient import TaskCreate, TaskRead, TaskStats, TaskUpdate


def list_tasks(
    db: Session,
    org_id: UUID,
    patient_id: UUID | None = None,
    project_id: UUID | None = None,
    status: TaskStatus | None = None,
    assigned_user_id: UUID | None = None,
) -> list[Task]:
    query = db.query(Task).options(joinedload(Task.assigned_user)).filter(
        Task.organization_id == org_id,
    )
    if patient_id:
        query = query.filter(Task.patient_id == patient_id)
    if project_id:
        query = query.filter(Task.project_id == project_id)
    if status:
        query = query.filter(Task.status == status.value)
    if assigned_user_id:
        query = query.filter(Task.assigned_user_id == assigned_user_id)
    return query.order_by(Task.activity_date.asc(), Task.created_at.desc()).all()


def get_task(db: Session, org_id: UUID, task_id: UUID) -> Task | None:
    return db.query(Task).filter(
        Task.id == task_id,
        Task.organization_id == org_id,
    ).first()


def _check_links(
    db: Session,
    org_id: UUID,
    patient_id: UUID | None = None,
    project_id: UUID | None = None,
    assigned_user_id: UUID | None = None,
) -> None:
    if patient_id and not db.query(Patient.id).filter(
        Patient.id == patient_id, Patient.organization_id == org_id
    ).first():
        raise ValueError("Patient not found")
    if project_id and not db.query(Project.id).filter(
        Project.id == project_id, Project.organization_id == org_id
    ).first():
        raise ValueError("Project not found")
    if assigned_user_id and not db.query(Membership.id).filter(
        Membership.user_id == assigned_user_id, Membership.organization_id == org_id
    ).first():
        raise ValueError("Assignee is not a member of this organization")


def create_task(db: Session, org_id: UUID, user_id: UUID, data: TaskCreate) -> Task:
    _check_links(db, org_id, data.patient_id, data.project_id, data.assigned_user_id)
    task = Task(
        organization_id=org_id,
        created_by_user_id=user_id,
        name=data.name.strip(),
        content=data.content,
        patient_id=data.patient_id,
        project_id=data.project_id,
        status=data.status.value,
        priority=data.priority.value,
        type=data.type.value,
        activity_date=data.activity_date,
        assigned_user_id=data.assigned_user_id,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def update_task(db: Session, org_id: UUID, task: Task, data: TaskUpdate) -> Task:
    updates = data.model_dump(exclude_unset=True)
    if "name" in updates and not (updates["name"] or "").strip():
        raise ValueError("Task name is required.")
    if "assigned_user_id" in updates:
        _check_links(db, org_id, assigned_user_id=updates["assigned_user_id"])
        if updates["assigned_user_id"] != task.assigned_user_id:
            # New assignee has not seen it yet
            task.assigned_read_at = None

    for field in ("status", "priority", "type"):
        if field in updates:
            if updates[field] is None:
                updates.pop(field)
            else:
                updates[field] = updates[field].value

    for field, value in updates.items():
        setattr(task, field, value)
    db.commit()
    db.refresh(task)
    return task


def mark_read(db: Session, task: Task, user_id: UUID) -> Task:
    """Record the assignee's read receipt. Other users are a no-op."""
    if task.assigned_user_id == user_id and task.assigned_read_at is None:
        task.assigned_read_at = utcnow()
        db.commit()
        db.refresh(task)
    return task


def delete_task(db: Session, task: Task) -> None:
    db.delete(task)
    db.commit()


def get_stats(db: Session, org_id: UUID, assigned_user_id: UUID | None = None) -> TaskStats:
    query = db.query(Task.status, func.count(Task.id)).filter(Task.organization_id == org_id)
    if assigned_user_id:
        query = query.filter(Task.assigned_user_id == assigned_user_id)
    counts = dict(query.group_by(Task.status).all())

    open_query = db.query(Task.activity_date).filter(
        Task.organization_id == org_id,
        Task.status != TaskStatus.COMPLETED.value,
        Task.activity_date.isnot(None),
    )
    if assigned_user_id:
        open_query = open_query.filter(Task.assigned_user_id == assigned_user_id)
    now = utcnow()
    overdue = sum(1 for (activity_date,) in open_query.all() if as_utc(activity_date) < now)

    return TaskStats(
        not_started=counts.get(TaskStatus.NOT_STARTED.value, 0),
        in_progress=counts.get(TaskStatus.IN_PROGRESS.value, 0),
        completed=counts.get(TaskStatus.COMPLETED.value, 0),
        overdue=overdue,
    )


def to_task_read(task: Task) -> TaskRead:
    read = TaskRead.model_validate(task)
    if task.assigned_user:
        read.assigned_user_name = task.assigned_user.full_name
    return read
