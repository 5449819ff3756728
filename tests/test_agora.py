"""RTC token issuing for members and guests."""

import uuid
from unittest.mock import patch

import pytest

from aliice.core.config import settings
from aliice.services import agora_service


def test_channel_name_is_alphanumeric_and_bounded():
    channel_id = "0f8fad5b-d9cb-469f-a165-70867728950e"
    server_id = "7c9e6679-7425-40de-944b-e07fc1f90ae7"
    assert agora_service.channel_name(channel_id, server_id) == "ch7c9e667974250f8fad5bd9cb"
    assert agora_service.channel_name(channel_id, None) == "chdm0f8fad5bd9cb"


def test_uid_is_stable_per_user():
    user_id = uuid.UUID("00000010-0000-0000-0000-000000000000")
    assert agora_service.uid_for_user(user_id) == 16
    assert agora_service.uid_for_user(user_id) == agora_service.uid_for_user(user_id)


def test_no_certificate_means_empty_token(monkeypatch):
    monkeypatch.setattr(settings, "AGORA_APP_CERTIFICATE", "")
    assert agora_service.build_token("chabc", 1) == ""


async def _voice_channel(client):
    server = (await client.post("/dischat/servers", json={"name": "Calls"})).json()
    groups = (await client.get(f"/dischat/servers/{server['id']}/channels")).json()
    voice = next(c for g in groups for c in g["channels"] if c["channel_type"] == "voice")
    return server, voice


@pytest.mark.asyncio
async def test_member_token(authed_client, test_auth, monkeypatch):
    monkeypatch.setattr(settings, "AGORA_APP_ID", "app-id")
    monkeypatch.setattr(settings, "AGORA_APP_CERTIFICATE", "cert")
    server, voice = await _voice_channel(authed_client)

    with patch("aliice.services.agora_service.RtcTokenBuilder") as builder:
        builder.buildTokenWithUid.return_value = "rtc-token"
        res = await authed_client.post("/api/dischat/agora/token", json={
            "channel_id": voice["id"], "server_id": server["id"],
        })

    assert res.status_code == 200
    body = res.json()
    assert body["token"] == "rtc-token"
    assert body["appId"] == "app-id"
    assert body["uid"] == agora_service.uid_for_user(test_auth.user.id)
    assert body["userName"] == "Test User"
    assert body["channel"] == agora_service.channel_name(voice["id"], server["id"])
    args = builder.buildTokenWithUid.call_args.args
    assert args[:4] == ("app-id", "cert", body["channel"], body["uid"])
    assert args[4] == agora_service.PUBLISHER_ROLE


@pytest.mark.asyncio
async def test_non_member_token_rejected(authed_client, client_for, make_user):
    server, voice = await _voice_channel(authed_client)
    stranger = make_user(full_name="Stranger")
    async with client_for(stranger) as c:
        res = await c.post("/api/dischat/agora/token", json={
            "channel_id": voice["id"], "server_id": server["id"],
        })
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_guest_token_uses_call_invite(authed_client, client):
    server, voice = await _voice_channel(authed_client)
    invite = (await authed_client.post(
        f"/dischat/channels/{voice['id']}/call-invites", json={"max_uses": 1}
    )).json()

    headers = {"X-Requested-With": "XMLHttpRequest"}
    payload = {
        "channel_id": voice["id"],
        "server_id": server["id"],
        "is_guest": True,
        "guest_code": invite["code"],
        "uid": 42,
    }
    res = await client.post("/api/dischat/agora/token", json=payload, headers=headers)
    assert res.status_code == 200
    assert res.json()["userName"] == "Guest_42"
    assert res.json()["uid"] == 42

    res = await client.post("/api/dischat/agora/token", json=payload, headers=headers)
    assert res.status_code == 403
    assert res.json() == {"error": "Invite has reached max uses"}


@pytest.mark.asyncio
async def test_guest_code_for_other_channel_rejected(authed_client, client):
    server, voice = await _voice_channel(authed_client)
    invite = (await authed_client.post(f"/dischat/channels/{voice['id']}/call-invites", json={})).json()

    res = await client.post(
        "/api/dischat/agora/token",
        json={"channel_id": str(uuid.uuid4()), "is_guest": True, "guest_code": invite["code"]},
        headers={"X-Requested-With": "XMLHttpRequest"},
    )
    assert res.status_code == 403
    assert res.json() == {"error": "Invalid invite code"}


@pytest.mark.asyncio
async def test_anonymous_without_code_needs_auth(client):
    res = await client.post(
        "/api/dischat/agora/token",
        json={"channel_id": "abc"},
        headers={"X-Requested-With": "XMLHttpRequest"},
    )
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_channel_id_required(authed_client):
    res = await authed_client.post("/api/dischat/agora/token", json={})
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_guest_token_ignores_stale_cookie_and_needs_no_csrf(authed_client, client):
    server, voice = await _voice_channel(authed_client)
    invite = (await authed_client.post(f"/dischat/channels/{voice['id']}/call-invites", json={})).json()

    client.cookies.set("aliice_session", "expired-or-garbage")
    res = await client.post("/api/dischat/agora/token", json={
        "channel_id": voice["id"],
        "server_id": server["id"],
        "is_guest": True,
        "guest_code": invite["code"],
        "uid": 7,
    })
    assert res.status_code == 200
    assert res.json()["userName"] == "Guest_7"


@pytest.mark.asyncio
async def test_member_token_still_requires_csrf_header(client, test_auth):
    client.cookies.set(test_auth.cookie_name, test_auth.token)
    res = await client.post("/api/dischat/agora/token", json={"channel_id": "abc"})
    assert res.status_code == 403
