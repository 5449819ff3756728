"""Assistant chat service.

Stateless completions for /api/chat and stored conversations that replay
their history through the same pipeline.
"""

import logging
import uuid

from sqlalchemy.orm import Session

from aliice.core.config import settings
from aliice.core.time_utils import utcnow
from aliice.db.enums import ChatRole
from aliice.db.models import ChatConversation, ChatMessage, Patient
from aliice.schemas.chat import ChatReply, ChatTurn, ConversationCreate, ConversationUpdate
from aliice.services import ai_provider
from aliice.services.ai_provider import ChatMessage as LLMMessage

logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 8000
CHAT_TEMPERATURE = 0.6
TITLE_MAX_CHARS = 60

ALIICE_SYSTEM_PROMPT = (
    "You are Aliice, an AI assistant embedded inside a medical CRM. You help staff "
    "with bookings, post-op documentation, deals/pipelines, workflows, and patient or "
    "insurance communication. Always behave as an internal staff-facing tool: be "
    "concise, precise, and never invent real patient data. When you draft content that "
    "will be sent to or shown to a patient (emails, SMS, WhatsApp messages, document "
    "templates, etc.), you MUST use the clinic's CRM template variables instead of "
    "hard-coding patient or deal details. Use variables like {{patient.first_name}}, "
    "{{patient.last_name}}, {{patient.email}}, {{patient.phone}}, {{deal.title}}, "
    "{{deal.pipeline}}, and {{deal.notes}} where appropriate. Do not invent new variable "
    "names that are not part of the CRM; if you need a field that does not exist, "
    "describe it in natural language instead of creating a fake variable."
)

LINKED_PATIENT_PROMPT = (
    "This chat has been linked to a specific patient in the clinic's CRM. When staff "
    "refer to 'this patient' or 'the patient', assume they mean that linked patient. "
    "However, you still must never insert real patient details directly; always refer "
    "to them using the CRM template variables like {{patient.first_name}} and "
    "{{patient.last_name}} rather than concrete values."
)


class EmptyCompletionError(Exception):
    """The model returned no message content."""


# ============================================================================
# Completion pipeline
# ============================================================================

def prepare_messages(turns: list[ChatTurn] | None) -> list[LLMMessage]:
    """
    Cut each message to MAX_MESSAGE_CHARS and drop blank ones.

    Raises:
        ValueError: missing array, or nothing left after trimming
    """
    if not turns:
        raise ValueError("Missing messages array")

    trimmed = [
        LLMMessage(role=turn.role.value, content=(turn.content or "")[:MAX_MESSAGE_CHARS])
        for turn in turns
    ]
    trimmed = [m for m in trimmed if m.content.strip()]
    if not trimmed:
        raise ValueError("Messages must contain non-empty content")
    return trimmed


def build_prompt(messages: list[LLMMessage], has_patient: bool) -> list[LLMMessage]:
    system = [LLMMessage(role=ChatRole.SYSTEM.value, content=ALIICE_SYSTEM_PROMPT)]
    if has_patient:
        system.append(LLMMessage(role=ChatRole.SYSTEM.value, content=LINKED_PATIENT_PROMPT))
    return system + messages


async def complete(messages: list[LLMMessage], has_patient: bool = False) -> ChatReply:
    """
    Run one completion over already-trimmed messages.

    Raises:
        EmptyCompletionError: provider answered without content
    """
    provider = ai_provider.get_provider()
    response = await provider.chat(
        build_prompt(messages, has_patient),
        model=settings.OPENAI_MODEL,
        temperature=CHAT_TEMPERATURE,
    )
    if not response.content:
        raise EmptyCompletionError("No response from OpenAI")
    return ChatReply(role=response.role or ChatRole.ASSISTANT.value, content=response.content)


# ============================================================================
# Stored conversations
# ============================================================================

def list_conversations(
    db: Session,
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    include_archived: bool = False,
) -> list[ChatConversation]:
    query = db.query(ChatConversation).filter(
        ChatConversation.organization_id == org_id,
        ChatConversation.user_id == user_id,
    )
    if not include_archived:
        query = query.filter(ChatConversation.is_archived.is_(False))
    return query.order_by(ChatConversation.updated_at.desc()).all()


def get_conversation(
    db: Session,
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    conversation_id: uuid.UUID,
) -> ChatConversation | None:
    """Conversation owned by the user. Other users' threads read as missing."""
    return db.query(ChatConversation).filter(
        ChatConversation.id == conversation_id,
        ChatConversation.organization_id == org_id,
        ChatConversation.user_id == user_id,
    ).first()


def _check_patient(db: Session, org_id: uuid.UUID, patient_id: uuid.UUID | None) -> None:
    if patient_id and not db.query(Patient.id).filter(
        Patient.id == patient_id, Patient.organization_id == org_id
    ).first():
        raise ValueError("Patient not found")


def create_conversation(
    db: Session,
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    data: ConversationCreate,
) -> ChatConversation:
    _check_patient(db, org_id, data.patient_id)
    conversation = ChatConversation(
        organization_id=org_id,
        user_id=user_id,
        patient_id=data.patient_id,
        title=(data.title or "").strip() or "New chat",
    )
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return conversation


def update_conversation(
    db: Session,
    org_id: uuid.UUID,
    conversation: ChatConversation,
    data: ConversationUpdate,
) -> ChatConversation:
    updates = data.model_dump(exclude_unset=True)
    if "patient_id" in updates:
        _check_patient(db, org_id, updates["patient_id"])
    if "title" in updates and not (updates["title"] or "").strip():
        updates.pop("title")
    if updates.get("is_archived") is None:
        updates.pop("is_archived", None)
    for field, value in updates.items():
        setattr(conversation, field, value)
    db.commit()
    db.refresh(conversation)
    return conversation


def delete_conversation(db: Session, conversation: ChatConversation) -> None:
    db.delete(conversation)
    db.commit()


def get_messages(db: Session, conversation_id: uuid.UUID) -> list[ChatMessage]:
    return db.query(ChatMessage).filter(
        ChatMessage.conversation_id == conversation_id
    ).order_by(ChatMessage.created_at).all()


def _add_message(
    db: Session,
    conversation: ChatConversation,
    role: ChatRole,
    content: str,
) -> ChatMessage:
    message = ChatMessage(
        conversation_id=conversation.id,
        role=role.value,
        content=content,
    )
    db.add(message)
    conversation.updated_at = utcnow()
    db.commit()
    db.refresh(message)
    return message


async def send_message(
    db: Session,
    conversation: ChatConversation,
    content: str,
) -> list[ChatMessage]:
    """
    Persist the user turn, complete over the stored history, persist the reply.

    The user turn is kept even if the completion fails.
    Returns [user_message, assistant_message].
    """
    content = content[:MAX_MESSAGE_CHARS]
    if not content.strip():
        raise ValueError("Messages must contain non-empty content")

    if conversation.title == "New chat" and not get_messages(db, conversation.id):
        conversation.title = content.strip()[:TITLE_MAX_CHARS]

    user_message = _add_message(db, conversation, ChatRole.USER, content)
    history = [
        LLMMessage(role=m.role, content=m.content[:MAX_MESSAGE_CHARS])
        for m in get_messages(db, conversation.id)
        if m.content.strip()
    ]

    reply = await complete(history, has_patient=conversation.patient_id is not None)
    assistant_message = _add_message(db, conversation, ChatRole.ASSISTANT, reply.content)
    logger.info(
        "Chat reply stored",
        extra={"conversation_id": str(conversation.id), "message_id": str(assistant_message.id)},
    )
    return [user_message, assistant_message]
