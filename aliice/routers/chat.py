"""AI chat routes: the stateless /api/chat endpoint and stored conversations."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db, require_csrf_header
from aliice.core.rate_limit import AI_LIMIT, limiter
from aliice.schemas.auth import UserSession
from aliice.schemas.chat import (
    ChatRequest,
    ChatResponseBody,
    ConversationCreate,
    ConversationRead,
    ConversationUpdate,
    SendMessageRequest,
    StoredMessageRead,
)
from aliice.services import chat_service
from aliice.services.chat_service import EmptyCompletionError

router = APIRouter(tags=["chat"])
logger = logging.getLogger(__name__)


@router.post(
    "/api/chat",
    response_model=ChatResponseBody,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AI_LIMIT)
async def chat(
    request: Request,
    body: ChatRequest,
    session: UserSession = Depends(get_current_session),
):
    """Single-shot completion over the client-held message list."""
    try:
        messages = chat_service.prepare_messages(body.messages)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        reply = await chat_service.complete(messages, has_patient=body.patientId is not None)
    except EmptyCompletionError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception:
        logger.exception(
            "Chat completion failed",
            extra={"user_id": str(session.user_id), "org_id": str(session.org_id)},
        )
        raise HTTPException(status_code=500, detail="Failed to generate chat response")
    return ChatResponseBody(message=reply)


# ============================================================================
# Conversations
# ============================================================================

def _get_conversation_or_404(db: Session, session: UserSession, conversation_id: UUID):
    conversation = chat_service.get_conversation(
        db, session.org_id, session.user_id, conversation_id
    )
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


@router.get("/chat/conversations", response_model=list[ConversationRead])
def list_conversations(
    include_archived: bool = False,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return chat_service.list_conversations(
        db, session.org_id, session.user_id, include_archived
    )


@router.post(
    "/chat/conversations",
    response_model=ConversationRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_conversation(
    data: ConversationCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return chat_service.create_conversation(db, session.org_id, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/chat/conversations/{conversation_id}",
    response_model=ConversationRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_conversation(
    conversation_id: UUID,
    data: ConversationUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    conversation = _get_conversation_or_404(db, session, conversation_id)
    try:
        return chat_service.update_conversation(db, session.org_id, conversation, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/chat/conversations/{conversation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_conversation(
    conversation_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    conversation = _get_conversation_or_404(db, session, conversation_id)
    chat_service.delete_conversation(db, conversation)


@router.get(
    "/chat/conversations/{conversation_id}/messages",
    response_model=list[StoredMessageRead],
)
def list_messages(
    conversation_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    conversation = _get_conversation_or_404(db, session, conversation_id)
    return chat_service.get_messages(db, conversation.id)


@router.post(
    "/chat/conversations/{conversation_id}/messages",
    response_model=list[StoredMessageRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AI_LIMIT)
async def send_message(
    request: Request,
    conversation_id: UUID,
    data: SendMessageRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Returns the stored user turn followed by the assistant reply."""
    conversation = _get_conversation_or_404(db, session, conversation_id)
    try:
        return await chat_service.send_message(db, conversation, data.content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EmptyCompletionError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception:
        logger.exception(
            "Conversation reply failed",
            extra={"conversation_id": str(conversation_id)},
        )
        raise HTTPException(status_code=500, detail="Failed to generate chat response")
