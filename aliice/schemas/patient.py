"""Pydantic schemas for patients and tasks."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from aliice.db.enums import PatientSource, TaskPriority, TaskStatus, TaskType


# =============================================================================
# Patients
# =============================================================================

class PatientCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    gender: str | None = Field(None, max_length=20)
    dob: date | None = None
    nationality: str | None = Field(None, max_length=100)
    address: str | None = Field(None, max_length=500)
    notes: str | None = None
    source: PatientSource = PatientSource.MANUAL


class PatientUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    gender: str | None = Field(None, max_length=20)
    dob: date | None = None
    nationality: str | None = Field(None, max_length=100)
    address: str | None = Field(None, max_length=500)
    notes: str | None = None
    source: PatientSource | None = None


class IntakeSubmit(BaseModel):
    """Intake form payload. Health answers are kept verbatim in the notes snapshot."""
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    gender: str | None = Field(None, max_length=20)
    dob: date | None = None
    nationality: str | None = Field(None, max_length=100)
    address: str | None = Field(None, max_length=500)
    language: str | None = Field(None, max_length=10)
    contact_preference: str | None = Field(None, max_length=20)
    health: dict = {}
    consent_accepted: bool = False


class IntakeLookup(BaseModel):
    email: str | None = None
    phone: str | None = None


class PatientRead(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    gender: str | None
    dob: date | None
    nationality: str | None
    address: str | None
    notes: str | None
    source: PatientSource
    created_at: datetime

    model_config = {"from_attributes": True}


class IntakeLookupResponse(BaseModel):
    patient: PatientRead | None = None


# =============================================================================
# Tasks
# =============================================================================

class TaskCreate(BaseModel):
    """Request to create a task."""
    name: str = Field(..., min_length=1, max_length=255)
    content: str | None = None
    patient_id: UUID | None = None
    project_id: UUID | None = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: TaskPriority = TaskPriority.MEDIUM
    type: TaskType = TaskType.TODO
    activity_date: datetime | None = None
    assigned_user_id: UUID | None = None


class TaskUpdate(BaseModel):
    """Request to update a task (partial)."""
    name: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    type: TaskType | None = None
    activity_date: datetime | None = None
    assigned_user_id: UUID | None = None


class TaskRead(BaseModel):
    id: UUID
    patient_id: UUID | None
    project_id: UUID | None
    name: str
    content: str | None
    status: TaskStatus
    priority: TaskPriority
    type: TaskType
    activity_date: datetime | None
    created_by_user_id: UUID | None
    assigned_user_id: UUID | None
    assigned_user_name: str | None = None
    assigned_read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TaskStats(BaseModel):
    not_started: int
    in_progress: int
    completed: int
    overdue: int
