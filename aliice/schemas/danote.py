"""Pydantic schemas for Danote boards, elements and comments."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from aliice.db.enums import DanoteNotificationType, ElementType, ResizeHandle, ZOrderAction


# =============================================================================
# Boards
# =============================================================================

class BoardCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    thumbnail_color: str | None = Field(None, max_length=20)
    parent_board_id: UUID | None = None
    project_id: UUID | None = None


class BoardUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    thumbnail_color: str | None = Field(None, max_length=20)
    parent_board_id: UUID | None = None
    project_id: UUID | None = None
    is_archived: bool | None = None


class BoardRead(BaseModel):
    id: UUID
    name: str
    description: str | None
    thumbnail_color: str | None
    parent_board_id: UUID | None
    project_id: UUID | None
    is_archived: bool
    created_by_user_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Elements
# =============================================================================

class ElementCreate(BaseModel):
    """New element. Omitted size/color fall back to per-type defaults."""
    type: ElementType
    x: float = 0
    y: float = 0
    width: float | None = Field(None, gt=0)
    height: float | None = Field(None, gt=0)
    content: str | None = None
    color: str | None = Field(None, max_length=20)
    metadata: dict[str, Any] = Field(default_factory=dict)
    parent_id: UUID | None = None


class ElementUpdate(BaseModel):
    """Changed columns of one gesture. metadata keys are merged, not replaced."""
    x: float | None = None
    y: float | None = None
    width: float | None = Field(None, gt=0)
    height: float | None = Field(None, gt=0)
    z_index: int | None = Field(None, ge=0)
    content: str | None = None
    color: str | None = Field(None, max_length=20)
    metadata: dict[str, Any] | None = None


class ElementRead(BaseModel):
    id: UUID
    board_id: UUID
    type: ElementType
    x: float
    y: float
    width: float
    height: float
    z_index: int
    content: str | None
    color: str | None
    metadata: dict[str, Any]
    parent_id: UUID | None
    created_at: datetime
    updated_at: datetime


class ZOrderRequest(BaseModel):
    action: ZOrderAction


class ResizeRequest(BaseModel):
    handle: ResizeHandle
    dx: float = 0
    dy: float = 0


class RotateRequest(BaseModel):
    """Pointer position in canvas coordinates."""
    pointer_x: float
    pointer_y: float


class MoveRequest(BaseModel):
    """Drop position (top-left) in canvas coordinates."""
    x: float
    y: float


# =============================================================================
# Comments & notifications
# =============================================================================

class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    parent_id: UUID | None = None


class CommentRead(BaseModel):
    id: UUID
    board_id: UUID
    user_id: UUID
    author_name: str | None = None
    parent_id: UUID | None
    content: str
    mentioned_user_ids: list[UUID] = []
    created_at: datetime


class DanoteNotificationRead(BaseModel):
    id: UUID
    type: DanoteNotificationType
    message: str
    board_id: UUID | None
    comment_id: UUID | None
    from_user_id: UUID | None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class DanoteNotificationList(BaseModel):
    items: list[DanoteNotificationRead]
    unread_count: int
