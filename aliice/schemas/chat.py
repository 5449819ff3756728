"""Pydantic schemas for the assistant chat."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from aliice.db.enums import ChatRole


class ChatTurn(BaseModel):
    """One message of a stateless /api/chat exchange."""
    role: ChatRole = ChatRole.USER
    content: str | None = None


class ChatRequest(BaseModel):
    messages: list[ChatTurn] | None = None
    patientId: UUID | None = None


class ChatReply(BaseModel):
    role: str
    content: str


class ChatResponseBody(BaseModel):
    message: ChatReply


class ConversationCreate(BaseModel):
    title: str | None = Field(None, max_length=255)
    patient_id: UUID | None = None


class ConversationUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    patient_id: UUID | None = None
    is_archived: bool | None = None


class ConversationRead(BaseModel):
    id: UUID
    title: str
    patient_id: UUID | None
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StoredMessageRead(BaseModel):
    id: UUID
    role: ChatRole
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=8000)
