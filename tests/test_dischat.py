"""Dischat servers, roles, invites, messaging, threads and DMs."""

from datetime import datetime, timedelta, timezone

import pytest

from aliice.core.permissions import Permission
from aliice.db.models import Organization


async def _server(client, name="Clinic Team"):
    res = await client.post("/dischat/servers", json={"name": name})
    assert res.status_code == 201
    return res.json()


async def _channels(client, server_id):
    res = await client.get(f"/dischat/servers/{server_id}/channels")
    assert res.status_code == 200
    return {c["name"]: c for group in res.json() for c in group["channels"]}


async def _join(client_for, owner_client, server_id, user):
    invite = (await owner_client.post(f"/dischat/servers/{server_id}/invites", json={})).json()
    async with client_for(user) as c:
        res = await c.post(f"/dischat/invites/{invite['code']}/join")
    assert res.status_code == 200
    return res.json()["member_id"]


# =============================================================================
# Servers
# =============================================================================

@pytest.mark.asyncio
async def test_new_server_has_starter_layout(authed_client):
    server = await _server(authed_client)

    res = await authed_client.get(f"/dischat/servers/{server['id']}/channels")
    [group] = res.json()
    assert group["name"] == "Text Channels"
    assert [(c["name"], c["channel_type"]) for c in group["channels"]] == [
        ("general", "text"),
        ("voice", "voice"),
    ]

    res = await authed_client.get(f"/dischat/servers/{server['id']}/roles")
    [role] = res.json()
    assert role["name"] == "@everyone"
    assert role["is_default"] is True

    res = await authed_client.get(f"/dischat/servers/{server['id']}/members")
    [owner] = res.json()
    assert owner["is_owner"] is True
    assert owner["role_ids"] == [role["id"]]


@pytest.mark.asyncio
async def test_blank_server_name_rejected(authed_client):
    res = await authed_client.post("/dischat/servers", json={"name": "   "})
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_non_member_cannot_read_server(authed_client, client_for, make_user):
    server = await _server(authed_client)
    stranger = make_user(full_name="Stranger")
    async with client_for(stranger) as c:
        res = await c.get(f"/dischat/servers/{server['id']}")
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_owner_has_every_permission(authed_client):
    server = await _server(authed_client)
    res = await authed_client.get(f"/dischat/servers/{server['id']}/permissions/me")
    body = res.json()
    assert "ADMINISTRATOR" in body["granted"]
    assert "MODERATE_MEMBERS" in body["granted"]


@pytest.mark.asyncio
async def test_permission_registry_lists_labels(authed_client):
    res = await authed_client.get("/dischat/permissions")
    rows = {row["name"]: row for row in res.json()}
    assert rows["SEND_MESSAGES"]["value"] == 1 << 11
    assert rows["MODERATE_MEMBERS"]["category"] == "Membership"


@pytest.mark.asyncio
async def test_only_owner_deletes_server(authed_client, client_for, make_user):
    server = await _server(authed_client)
    jane = make_user(full_name="Jane Doe")
    await _join(client_for, authed_client, server["id"], jane)

    async with client_for(jane) as c:
        res = await c.delete(f"/dischat/servers/{server['id']}")
    assert res.status_code == 403

    res = await authed_client.delete(f"/dischat/servers/{server['id']}")
    assert res.status_code == 204
    res = await authed_client.get("/dischat/servers")
    assert res.json() == []


# =============================================================================
# Roles
# =============================================================================

@pytest.mark.asyncio
async def test_role_lifecycle_and_default_role_protection(authed_client, client_for, make_user):
    server = await _server(authed_client)
    sid = server["id"]

    res = await authed_client.post(f"/dischat/servers/{sid}/roles", json={
        "name": "Moderator", "permissions": int(Permission.MANAGE_MESSAGES),
    })
    assert res.status_code == 201
    moderator = res.json()
    assert moderator["position"] == 1

    roles = (await authed_client.get(f"/dischat/servers/{sid}/roles")).json()
    everyone = next(r for r in roles if r["is_default"])
    assert [r["name"] for r in roles] == ["Moderator", "@everyone"]

    res = await authed_client.patch(f"/dischat/servers/{sid}/roles/{everyone['id']}", json={"name": "all"})
    assert res.json()["name"] == "@everyone"

    res = await authed_client.delete(f"/dischat/servers/{sid}/roles/{everyone['id']}")
    assert res.status_code == 400

    jane = make_user(full_name="Jane Doe")
    member_id = await _join(client_for, authed_client, sid, jane)
    res = await authed_client.put(f"/dischat/servers/{sid}/members/{member_id}/roles/{moderator['id']}")
    assert moderator["id"] in res.json()["role_ids"]

    # @everyone has no MANAGE_ROLES
    async with client_for(jane) as c:
        res = await c.post(f"/dischat/servers/{sid}/roles", json={"name": "Mine"})
    assert res.status_code == 403


# =============================================================================
# Invites
# =============================================================================

@pytest.mark.asyncio
async def test_invite_join_and_limits(authed_client, client_for, make_user):
    server = await _server(authed_client)
    invite = (await authed_client.post(
        f"/dischat/servers/{server['id']}/invites", json={"max_uses": 1}
    )).json()
    assert len(invite["code"]) == 8

    res = await authed_client.post(f"/dischat/invites/{invite['code']}/join")
    assert res.status_code == 400
    assert res.json() == {"error": "Already a member of this server"}

    jane = make_user(full_name="Jane Doe")
    async with client_for(jane) as c:
        res = await c.post(f"/dischat/invites/{invite['code']}/join")
    assert res.status_code == 200
    assert res.json()["success"] is True
    assert res.json()["server"]["id"] == server["id"]

    omar = make_user(full_name="Omar Staff")
    async with client_for(omar) as c:
        res = await c.post(f"/dischat/invites/{invite['code']}/join")
    assert res.status_code == 410

    res = await authed_client.get("/dischat/invites/nope1234")
    assert res.status_code == 404


# =============================================================================
# Messages
# =============================================================================

@pytest.mark.asyncio
async def test_send_message_parses_mentions(authed_client, make_user):
    jane = make_user(full_name="Jane Doe")
    server = await _server(authed_client)
    general = (await _channels(authed_client, server["id"]))["general"]

    res = await authed_client.post(
        f"/dischat/channels/{general['id']}/messages",
        json={"content": f"<@{jane.id}> hi <@{jane.id}> and @everyone"},
    )
    assert res.status_code == 201
    message = res.json()
    assert message["mentions"] == [str(jane.id)]
    assert message["mention_everyone"] is True
    assert message["author_name"] == "Test User"


@pytest.mark.asyncio
async def test_voice_channel_rejects_text(authed_client):
    server = await _server(authed_client)
    voice = (await _channels(authed_client, server["id"]))["voice"]
    res = await authed_client.post(f"/dischat/channels/{voice['id']}/messages", json={"content": "hi"})
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_message_history_pages_oldest_first(authed_client):
    server = await _server(authed_client)
    general = (await _channels(authed_client, server["id"]))["general"]
    ids = []
    for i in range(3):
        res = await authed_client.post(f"/dischat/channels/{general['id']}/messages", json={"content": f"m{i}"})
        ids.append(res.json()["id"])

    res = await authed_client.get(f"/dischat/channels/{general['id']}/messages")
    assert [m["content"] for m in res.json()] == ["m0", "m1", "m2"]

    res = await authed_client.get(f"/dischat/channels/{general['id']}/messages", params={"limit": 2})
    assert [m["content"] for m in res.json()] == ["m1", "m2"]


@pytest.mark.asyncio
async def test_timed_out_member_cannot_send(authed_client, client_for, make_user):
    server = await _server(authed_client)
    general = (await _channels(authed_client, server["id"]))["general"]
    jane = make_user(full_name="Jane Doe")
    member_id = await _join(client_for, authed_client, server["id"], jane)

    until = (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()
    res = await authed_client.patch(
        f"/dischat/servers/{server['id']}/members/{member_id}",
        json={"communication_disabled_until": until},
    )
    assert res.status_code == 200

    async with client_for(jane) as c:
        res = await c.post(f"/dischat/channels/{general['id']}/messages", json={"content": "hello"})
    assert res.status_code == 403
    assert res.json() == {"error": "You are timed out from this server"}


@pytest.mark.asyncio
async def test_message_delete_is_soft_and_author_or_moderator(authed_client, client_for, make_user):
    server = await _server(authed_client)
    general = (await _channels(authed_client, server["id"]))["general"]
    jane = make_user(full_name="Jane Doe")
    await _join(client_for, authed_client, server["id"], jane)

    message = (await authed_client.post(
        f"/dischat/channels/{general['id']}/messages", json={"content": "owner says"}
    )).json()

    async with client_for(jane) as c:
        res = await c.delete(f"/dischat/channels/{general['id']}/messages/{message['id']}")
    assert res.status_code == 403

    res = await authed_client.delete(f"/dischat/channels/{general['id']}/messages/{message['id']}")
    assert res.status_code == 204
    res = await authed_client.get(f"/dischat/channels/{general['id']}/messages")
    assert res.json() == []


@pytest.mark.asyncio
async def test_call_invites_only_for_call_channels(authed_client):
    server = await _server(authed_client)
    channels = await _channels(authed_client, server["id"])

    res = await authed_client.post(f"/dischat/channels/{channels['general']['id']}/call-invites", json={})
    assert res.status_code == 400

    res = await authed_client.post(f"/dischat/channels/{channels['voice']['id']}/call-invites", json={})
    assert res.status_code == 201
    assert res.json()["channel_id"] == channels["voice"]["id"]


# =============================================================================
# Threads
# =============================================================================

@pytest.mark.asyncio
async def test_thread_from_message(authed_client):
    server = await _server(authed_client)
    general = (await _channels(authed_client, server["id"]))["general"]
    message = (await authed_client.post(
        f"/dischat/channels/{general['id']}/messages", json={"content": "Shift swap?"}
    )).json()

    res = await authed_client.post(f"/dischat/channels/{general['id']}/threads", json={
        "name": "Shift Swap Friday", "message_id": message["id"],
    })
    assert res.status_code == 201
    thread = res.json()
    assert thread["name"] == "Shift Swap Friday"
    assert thread["starter_message_id"] == message["id"]
    assert thread["auto_archive_duration"] == 1440
    assert thread["thread_channel"]["name"] == "shift-swap-friday"
    assert thread["thread_channel"]["channel_type"] == "text"

    [starter] = (await authed_client.get(f"/dischat/channels/{general['id']}/messages")).json()
    assert starter["message_type"] == "thread_starter"
    assert starter["thread_id"] == thread["thread_channel_id"]

    # Thread messages live in the thread channel
    res = await authed_client.post(
        f"/dischat/channels/{thread['thread_channel_id']}/messages", json={"content": "I can take it"}
    )
    assert res.status_code == 201

    res = await authed_client.get(f"/dischat/channels/{general['id']}/threads")
    assert [t["id"] for t in res.json()] == [thread["id"]]

    # The thread channel is not listed with the server's channels
    assert "shift-swap-friday" not in await _channels(authed_client, server["id"])

    res = await authed_client.post(f"/dischat/channels/{general['id']}/threads", json={
        "name": "Again", "message_id": message["id"],
    })
    assert res.status_code == 400
    assert res.json() == {"error": "This message already has a thread"}


@pytest.mark.asyncio
async def test_thread_requires_membership_and_text_channel(authed_client, client_for, make_user):
    server = await _server(authed_client)
    channels = await _channels(authed_client, server["id"])

    res = await authed_client.post(
        f"/dischat/channels/{channels['voice']['id']}/threads", json={"name": "Call notes"}
    )
    assert res.status_code == 400

    stranger = make_user(full_name="Stranger")
    async with client_for(stranger) as c:
        res = await c.post(
            f"/dischat/channels/{channels['general']['id']}/threads", json={"name": "Hi"}
        )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_deleting_parent_channel_removes_its_threads(authed_client):
    server = await _server(authed_client)
    general = (await _channels(authed_client, server["id"]))["general"]
    thread = (await authed_client.post(
        f"/dischat/channels/{general['id']}/threads", json={"name": "Side topic"}
    )).json()

    res = await authed_client.delete(f"/dischat/channels/{general['id']}")
    assert res.status_code == 204
    res = await authed_client.get(f"/dischat/channels/{thread['thread_channel_id']}/messages")
    assert res.status_code == 404


# =============================================================================
# Direct messages
# =============================================================================

@pytest.mark.asyncio
async def test_open_dm_reuses_pair(authed_client, client_for, make_user, test_auth):
    jane = make_user(full_name="Jane Doe")

    res = await authed_client.post("/dischat/dms", json={"recipient_id": str(jane.id)})
    assert res.status_code == 201
    body = res.json()
    assert body["created"] is True
    assert body["dm"]["other_user_name"] == "Jane Doe"

    # Same pair opened from the other side
    async with client_for(jane) as c:
        res = await c.post("/dischat/dms", json={"recipient_id": str(test_auth.user.id)})
    assert res.status_code == 200
    assert res.json()["created"] is False
    assert res.json()["dm"]["id"] == body["dm"]["id"]
    assert res.json()["dm"]["other_user_name"] == "Test User"

    res = await authed_client.post("/dischat/dms", json={})
    assert res.status_code == 400
    assert res.json() == {"error": "Recipient ID is required"}


@pytest.mark.asyncio
async def test_dm_messages_page_like_channels(authed_client, client_for, make_user):
    jane = make_user(full_name="Jane Doe")
    dm = (await authed_client.post("/dischat/dms", json={"recipient_id": str(jane.id)})).json()["dm"]

    ids = []
    for i in range(4):
        res = await authed_client.post(f"/dischat/dms/{dm['id']}/messages", json={"content": f"d{i}"})
        assert res.status_code == 201
        ids.append(res.json()["id"])

    res = await authed_client.get(f"/dischat/dms/{dm['id']}/messages", params={"limit": 2})
    assert [m["content"] for m in res.json()] == ["d2", "d3"]

    res = await authed_client.get(f"/dischat/dms/{dm['id']}/messages", params={"before": ids[2]})
    assert [m["content"] for m in res.json()] == ["d0", "d1"]

    res = await authed_client.get(f"/dischat/dms/{dm['id']}/messages", params={"after": ids[1]})
    assert [m["content"] for m in res.json()] == ["d2", "d3"]

    async with client_for(jane) as c:
        res = await c.post(
            f"/dischat/dms/{dm['id']}/messages", json={"content": "got it", "reply_to_id": ids[3]}
        )
        assert res.json()["message_type"] == "reply"
        listing = (await c.get("/dischat/dms")).json()
    assert listing["dms"][0]["id"] == dm["id"]
    assert listing["dms"][0]["last_message_at"] is not None

    res = await authed_client.post(f"/dischat/dms/{dm['id']}/messages", json={"content": "   "})
    assert res.status_code == 400

    stranger = make_user(full_name="Stranger")
    async with client_for(stranger) as c:
        res = await c.get(f"/dischat/dms/{dm['id']}/messages")
    assert res.status_code == 403
    assert res.json() == {"error": "Access denied"}


@pytest.mark.asyncio
async def test_group_dm(authed_client, client_for, make_user, test_auth):
    jane = make_user(full_name="Jane Doe")
    omar = make_user(full_name="Omar Staff")

    res = await authed_client.post("/dischat/dms", json={
        "recipient_ids": [str(jane.id), str(omar.id)], "group_name": "Front desk",
    })
    assert res.status_code == 201
    dm = res.json()["dm"]
    assert dm["is_group"] is True
    assert dm["owner_id"] == str(test_auth.user.id)
    assert set(dm["member_ids"]) == {str(test_auth.user.id), str(jane.id), str(omar.id)}

    async with client_for(omar) as c:
        res = await c.post(f"/dischat/dms/{dm['id']}/messages", json={"content": "on my way"})
        assert res.status_code == 201
        listing = (await c.get("/dischat/dms")).json()
    assert listing["dms"] == []
    assert [g["group_name"] for g in listing["group_dms"]] == ["Front desk"]


@pytest.mark.asyncio
async def test_dm_rejects_self_and_outsiders(authed_client, db, test_auth, make_user):
    res = await authed_client.post("/dischat/dms", json={"recipient_id": str(test_auth.user.id)})
    assert res.status_code == 400
    assert res.json() == {"error": "Cannot create DM with yourself"}

    other_org = Organization(name="Other", slug="other-dm")
    db.add(other_org)
    db.commit()
    outsider = make_user(full_name="Outsider", org=other_org)
    res = await authed_client.post("/dischat/dms", json={"recipient_id": str(outsider.id)})
    assert res.status_code == 404
