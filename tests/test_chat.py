"""Assistant chat: stateless completions and stored conversations."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from aliice.services.ai_provider import ChatResponse
from aliice.services.chat_service import (
    ALIICE_SYSTEM_PROMPT,
    LINKED_PATIENT_PROMPT,
    MAX_MESSAGE_CHARS,
    prepare_messages,
)
from aliice.schemas.chat import ChatTurn


def _provider(content="Here is a draft for {{patient.first_name}}."):
    provider = MagicMock()
    provider.chat = AsyncMock(return_value=ChatResponse(
        content=content,
        role="assistant",
        prompt_tokens=10,
        completion_tokens=5,
        total_tokens=15,
        model="gpt-4o-mini",
    ))
    return provider


def test_prepare_messages_trims_and_drops_blank():
    turns = [
        ChatTurn(role="user", content="x" * (MAX_MESSAGE_CHARS + 50)),
        ChatTurn(role="assistant", content="   "),
        ChatTurn(role="user", content=None),
    ]
    [message] = prepare_messages(turns)
    assert len(message.content) == MAX_MESSAGE_CHARS


@pytest.mark.parametrize("turns,error", [
    (None, "Missing messages array"),
    ([], "Missing messages array"),
    ([ChatTurn(content="  ")], "Messages must contain non-empty content"),
])
def test_prepare_messages_rejects_empty(turns, error):
    with pytest.raises(ValueError, match=error):
        prepare_messages(turns)


@pytest.mark.asyncio
async def test_chat_returns_reply(authed_client):
    provider = _provider()
    with patch("aliice.services.ai_provider.get_provider", return_value=provider):
        res = await authed_client.post("/api/chat", json={
            "messages": [{"role": "user", "content": "Draft a reminder"}],
        })

    assert res.status_code == 200
    assert res.json() == {"message": {"role": "assistant", "content": "Here is a draft for {{patient.first_name}}."}}

    sent = provider.chat.call_args.args[0]
    assert sent[0].role == "system"
    assert sent[0].content == ALIICE_SYSTEM_PROMPT
    assert sent[-1].content == "Draft a reminder"
    assert provider.chat.call_args.kwargs["temperature"] == 0.6


@pytest.mark.asyncio
async def test_linked_patient_adds_second_system_prompt(authed_client):
    provider = _provider()
    with patch("aliice.services.ai_provider.get_provider", return_value=provider):
        await authed_client.post("/api/chat", json={
            "messages": [{"role": "user", "content": "Summarise this patient"}],
            "patientId": "00000000-0000-0000-0000-000000000001",
        })

    sent = provider.chat.call_args.args[0]
    assert [m.content for m in sent[:2]] == [ALIICE_SYSTEM_PROMPT, LINKED_PATIENT_PROMPT]


@pytest.mark.asyncio
async def test_chat_blank_messages_is_400(authed_client):
    res = await authed_client.post("/api/chat", json={"messages": [{"role": "user", "content": " "}]})
    assert res.status_code == 400
    assert res.json() == {"error": "Messages must contain non-empty content"}


@pytest.mark.asyncio
async def test_empty_completion_is_502(authed_client):
    with patch("aliice.services.ai_provider.get_provider", return_value=_provider(content=None)):
        res = await authed_client.post("/api/chat", json={"messages": [{"content": "hi"}]})
    assert res.status_code == 502
    assert res.json() == {"error": "No response from OpenAI"}


@pytest.mark.asyncio
async def test_provider_failure_is_500(authed_client):
    with patch("aliice.services.ai_provider.get_provider", side_effect=RuntimeError("boom")):
        res = await authed_client.post("/api/chat", json={"messages": [{"content": "hi"}]})
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to generate chat response"}


@pytest.mark.asyncio
async def test_chat_requires_session(client):
    res = await client.post(
        "/api/chat",
        json={"messages": [{"content": "hi"}]},
        headers={"X-Requested-With": "XMLHttpRequest"},
    )
    assert res.status_code == 401


# =============================================================================
# Stored conversations
# =============================================================================

@pytest.mark.asyncio
async def test_conversation_send_stores_both_turns(authed_client):
    conversation = (await authed_client.post("/chat/conversations", json={})).json()
    assert conversation["title"] == "New chat"

    with patch("aliice.services.ai_provider.get_provider", return_value=_provider("Sure.")):
        res = await authed_client.post(
            f"/chat/conversations/{conversation['id']}/messages",
            json={"content": "Write a post-op checklist"},
        )
    assert res.status_code == 201
    assert [(m["role"], m["content"]) for m in res.json()] == [
        ("user", "Write a post-op checklist"),
        ("assistant", "Sure."),
    ]

    res = await authed_client.get(f"/chat/conversations/{conversation['id']}/messages")
    assert len(res.json()) == 2

    res = await authed_client.get("/chat/conversations")
    assert res.json()[0]["title"] == "Write a post-op checklist"


@pytest.mark.asyncio
async def test_user_turn_kept_when_completion_fails(authed_client):
    conversation = (await authed_client.post("/chat/conversations", json={"title": "Ops"})).json()
    with patch("aliice.services.ai_provider.get_provider", return_value=_provider(content="")):
        res = await authed_client.post(
            f"/chat/conversations/{conversation['id']}/messages", json={"content": "hello"}
        )
    assert res.status_code == 502

    res = await authed_client.get(f"/chat/conversations/{conversation['id']}/messages")
    assert [m["role"] for m in res.json()] == ["user"]


@pytest.mark.asyncio
async def test_conversations_are_private(authed_client, client_for, make_user):
    conversation = (await authed_client.post("/chat/conversations", json={"title": "Mine"})).json()
    jane = make_user(full_name="Jane Doe")
    async with client_for(jane) as c:
        res = await c.get(f"/chat/conversations/{conversation['id']}/messages")
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_archived_conversations_hidden_by_default(authed_client):
    conversation = (await authed_client.post("/chat/conversations", json={"title": "Old"})).json()
    await authed_client.patch(f"/chat/conversations/{conversation['id']}", json={"is_archived": True})

    assert (await authed_client.get("/chat/conversations")).json() == []
    res = await authed_client.get("/chat/conversations", params={"include_archived": True})
    assert [c["title"] for c in res.json()] == ["Old"]
