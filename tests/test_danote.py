"""Danote boards, element gestures, comments and notifications."""

import uuid

import pytest

from aliice.db.models import DanoteMention


async def _board(client, name="Launch plan"):
    res = await client.post("/danote/boards", json={"name": name})
    assert res.status_code == 201
    return res.json()


async def _element(client, board_id, **payload):
    payload.setdefault("type", "note")
    res = await client.post(f"/danote/boards/{board_id}/elements", json=payload)
    assert res.status_code == 201
    return res.json()


# =============================================================================
# Elements
# =============================================================================

@pytest.mark.asyncio
async def test_new_elements_get_defaults_and_stack(authed_client):
    board = await _board(authed_client)
    first = await _element(authed_client, board["id"])
    second = await _element(authed_client, board["id"], type="container", x=400)

    assert (first["width"], first["height"], first["color"]) == (240, 160, "#fef3c7")
    assert (second["width"], second["height"]) == (320, 450)
    assert second["z_index"] == first["z_index"] + 1


@pytest.mark.asyncio
async def test_drawn_shapes_are_clamped(authed_client):
    board = await _board(authed_client)
    rect = await _element(authed_client, board["id"], type="rectangle", width=5, height=5)
    assert (rect["width"], rect["height"]) == (20, 20)


@pytest.mark.asyncio
async def test_metadata_patch_merges(authed_client):
    board = await _board(authed_client)
    el = await _element(authed_client, board["id"], metadata={"fontSize": 14})

    res = await authed_client.patch(f"/danote/elements/{el['id']}", json={"metadata": {"rotation": 45}})
    assert res.status_code == 200
    assert res.json()["metadata"] == {"fontSize": 14, "rotation": 45}


@pytest.mark.asyncio
async def test_duplicate_offsets_and_goes_on_top(authed_client):
    board = await _board(authed_client)
    el = await _element(authed_client, board["id"], x=100, y=100, content="Hello")
    await _element(authed_client, board["id"], x=600)

    res = await authed_client.post(f"/danote/elements/{el['id']}/duplicate")
    assert res.status_code == 201
    copy = res.json()
    assert (copy["x"], copy["y"]) == (120, 120)
    assert copy["content"] == "Hello"
    assert copy["z_index"] == 3


@pytest.mark.asyncio
async def test_z_order_actions(authed_client):
    board = await _board(authed_client)
    a = await _element(authed_client, board["id"])
    await _element(authed_client, board["id"])
    await _element(authed_client, board["id"])

    res = await authed_client.post(f"/danote/elements/{a['id']}/z-order", json={"action": "front"})
    assert res.json()["z_index"] == 4

    res = await authed_client.post(f"/danote/elements/{a['id']}/z-order", json={"action": "back"})
    assert res.json()["z_index"] == 1


@pytest.mark.asyncio
async def test_resize_and_rotate(authed_client):
    board = await _board(authed_client)
    el = await _element(authed_client, board["id"], x=0, y=0, width=100, height=100)

    res = await authed_client.post(
        f"/danote/elements/{el['id']}/resize", json={"handle": "se", "dx": 50, "dy": -20}
    )
    assert (res.json()["width"], res.json()["height"]) == (150, 80)

    res = await authed_client.post(
        f"/danote/elements/{el['id']}/rotate", json={"pointer_x": 300, "pointer_y": 40}
    )
    assert res.json()["metadata"]["rotation"] == pytest.approx(90)


@pytest.mark.asyncio
async def test_move_into_column_returns_touched_rows(authed_client):
    board = await _board(authed_client)
    column = await _element(authed_client, board["id"], type="column", x=0, y=0, width=300, height=800)
    note = await _element(authed_client, board["id"], x=600, y=600, width=100, height=40)

    res = await authed_client.post(f"/danote/elements/{note['id']}/move", json={"x": 100, "y": 40})
    assert res.status_code == 200
    moved = {row["id"]: row for row in res.json()}
    assert moved[note["id"]]["parent_id"] == column["id"]
    assert moved[note["id"]]["metadata"]["childIndex"] == 0

    # Deleting the column leaves the child on the board, detached
    res = await authed_client.delete(f"/danote/elements/{column['id']}")
    assert res.status_code == 204
    res = await authed_client.get(f"/danote/boards/{board['id']}/elements")
    [remaining] = res.json()
    assert remaining["parent_id"] is None
    assert "childIndex" not in remaining["metadata"]


@pytest.mark.asyncio
async def test_columns_cannot_be_nested(authed_client):
    board = await _board(authed_client)
    column = await _element(authed_client, board["id"], type="column")
    res = await authed_client.post(
        f"/danote/boards/{board['id']}/elements",
        json={"type": "column", "parent_id": column["id"]},
    )
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_boards_are_org_scoped(authed_client, client_for, db, make_user):
    from aliice.db.models import Organization

    board = await _board(authed_client)
    other_org = Organization(name="Other", slug="other-danote")
    db.add(other_org)
    db.commit()
    outsider = make_user(full_name="Out Sider", org=other_org)

    async with client_for(outsider, other_org) as c:
        res = await c.get(f"/danote/boards/{board['id']}")
    assert res.status_code == 404


# =============================================================================
# Comments & notifications
# =============================================================================

@pytest.mark.asyncio
async def test_mention_creates_notification(authed_client, client_for, make_user):
    jane = make_user(full_name="Jane Doe")
    board = await _board(authed_client)

    res = await authed_client.post(
        f"/danote/boards/{board['id']}/comments",
        json={"content": "@Jane Doe can you check this? @jane doe"},
    )
    assert res.status_code == 201
    comment = res.json()
    assert comment["mentioned_user_ids"] == [str(jane.id)]
    assert comment["author_name"] == "Test User"

    async with client_for(jane) as c:
        res = await c.get("/danote/notifications")
        inbox = res.json()
        assert inbox["unread_count"] == 1
        assert inbox["items"][0]["message"] == "Test User mentioned you in a comment"

        res = await c.post("/danote/notifications/read-all")
        assert res.json() == {"marked_read": 1}
        res = await c.get("/danote/notifications", params={"unread_only": True})
        assert res.json() == {"items": [], "unread_count": 0}


@pytest.mark.asyncio
async def test_self_mention_is_recorded(authed_client, db, test_auth):
    board = await _board(authed_client)
    res = await authed_client.post(
        f"/danote/boards/{board['id']}/comments", json={"content": "note to @Test User"}
    )
    assert res.json()["mentioned_user_ids"] == [str(test_auth.user.id)]

    comment_id = uuid.UUID(res.json()["id"])
    mentions = db.query(DanoteMention).filter(DanoteMention.comment_id == comment_id).count()
    assert mentions == 1

    res = await authed_client.get("/danote/notifications")
    items = res.json()["items"]
    assert len(items) == 1
    assert items[0]["type"] == "mention"
    assert items[0]["message"] == "Test User mentioned you in a comment"


@pytest.mark.asyncio
async def test_reply_notifies_parent_author(authed_client, client_for, test_auth, make_user):
    jane = make_user(full_name="Jane Doe")
    board = await _board(authed_client)
    root = (await authed_client.post(
        f"/danote/boards/{board['id']}/comments", json={"content": "Thoughts?"}
    )).json()

    async with client_for(jane) as c:
        res = await c.post(
            f"/danote/boards/{board['id']}/comments",
            json={"content": "Looks good", "parent_id": root["id"]},
        )
        assert res.json()["parent_id"] == root["id"]

    res = await authed_client.get("/danote/notifications")
    assert res.json()["items"][0]["type"] == "reply"


@pytest.mark.asyncio
async def test_only_author_deletes_comment(authed_client, client_for, make_user):
    jane = make_user(full_name="Jane Doe")
    board = await _board(authed_client)
    comment = (await authed_client.post(
        f"/danote/boards/{board['id']}/comments", json={"content": "Mine"}
    )).json()

    async with client_for(jane) as c:
        res = await c.delete(f"/danote/comments/{comment['id']}")
    assert res.status_code == 403
    assert res.json() == {"error": "Only the author can delete this comment"}

    res = await authed_client.delete(f"/danote/comments/{comment['id']}")
    assert res.status_code == 204
    res = await authed_client.get(f"/danote/boards/{board['id']}/comments")
    assert res.json() == []


@pytest.mark.asyncio
async def test_mark_unknown_notification_read(authed_client):
    res = await authed_client.post("/danote/notifications/00000000-0000-0000-0000-000000000000/read")
    assert res.status_code == 404
