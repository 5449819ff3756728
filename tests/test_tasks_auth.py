"""Tasks, read receipts, session endpoints, the dev seed and the error envelope."""

from datetime import datetime, timedelta, timezone

import pytest
from starlette.requests import Request

from aliice.core.config import settings
from aliice.core.rate_limit import session_or_ip
from aliice.core.security import create_session_token
from aliice.db.models import Organization


# =============================================================================
# Tasks
# =============================================================================

@pytest.mark.asyncio
async def test_create_task_with_assignee(authed_client, make_user):
    assignee = make_user(full_name="Nadia Staff")
    res = await authed_client.post("/tasks", json={
        "name": "Call patient",
        "assigned_user_id": str(assignee.id),
    })
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "not_started"
    assert body["assigned_user_name"] == "Nadia Staff"
    assert body["assigned_read_at"] is None


@pytest.mark.asyncio
async def test_assignee_must_belong_to_org(authed_client, db, make_user):
    other_org = Organization(name="Other", slug="other-org")
    db.add(other_org)
    db.commit()
    outsider = make_user(full_name="Outsider", org=other_org)

    res = await authed_client.post("/tasks", json={
        "name": "Call patient",
        "assigned_user_id": str(outsider.id),
    })
    assert res.status_code == 400
    assert res.json()["error"] == "Assignee is not a member of this organization"


@pytest.mark.asyncio
async def test_read_receipt_only_for_assignee(authed_client, client_for, make_user):
    assignee = make_user(full_name="Nadia Staff")
    task = (await authed_client.post("/tasks", json={
        "name": "Follow up",
        "assigned_user_id": str(assignee.id),
    })).json()

    # Creator opening the task leaves no receipt
    res = await authed_client.post(f"/tasks/{task['id']}/read")
    assert res.status_code == 200
    assert res.json()["assigned_read_at"] is None

    async with client_for(assignee) as c:
        res = await c.post(f"/tasks/{task['id']}/read")
    assert res.json()["assigned_read_at"] is not None

    # Reassigning clears the receipt
    other = make_user(full_name="Omar Staff")
    res = await authed_client.patch(f"/tasks/{task['id']}", json={"assigned_user_id": str(other.id)})
    assert res.json()["assigned_read_at"] is None


@pytest.mark.asyncio
async def test_task_filters_and_stats(authed_client, test_auth):
    past = (datetime.now(timezone.utc) - timedelta(days=2)).isoformat()
    future = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()

    await authed_client.post("/tasks", json={"name": "Late", "activity_date": past})
    await authed_client.post("/tasks", json={"name": "Soon", "activity_date": future, "status": "in_progress"})
    await authed_client.post("/tasks", json={
        "name": "Done", "activity_date": past, "status": "completed",
        "assigned_user_id": str(test_auth.user.id),
    })

    res = await authed_client.get("/tasks", params={"status": "in_progress"})
    assert [t["name"] for t in res.json()] == ["Soon"]

    res = await authed_client.get("/tasks", params={"assigned_to_me": True})
    assert [t["name"] for t in res.json()] == ["Done"]

    res = await authed_client.get("/tasks/stats")
    assert res.json() == {"not_started": 1, "in_progress": 1, "completed": 1, "overdue": 1}


@pytest.mark.asyncio
async def test_task_linked_to_unknown_patient(authed_client):
    res = await authed_client.post("/tasks", json={
        "name": "Call",
        "patient_id": "00000000-0000-0000-0000-000000000001",
    })
    assert res.status_code == 400
    assert res.json()["error"] == "Patient not found"


# =============================================================================
# Session
# =============================================================================

@pytest.mark.asyncio
async def test_me_returns_org_and_role(authed_client, test_auth):
    res = await authed_client.get("/auth/me")
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == test_auth.user.email
    assert body["org_name"] == "Test Organization"
    assert body["role"] == "admin"


@pytest.mark.asyncio
async def test_bearer_token_skips_csrf(client, test_auth):
    res = await client.post(
        "/companies",
        json={"name": "Acme"},
        headers={"Authorization": f"Bearer {test_auth.token}"},
    )
    assert res.status_code == 201


@pytest.mark.asyncio
async def test_revoked_token_version_is_rejected(client, db, test_auth):
    test_auth.user.token_version += 1
    db.commit()
    client.cookies.set(test_auth.cookie_name, test_auth.token)
    res = await client.get("/auth/me")
    assert res.status_code == 401
    assert res.json() == {"error": "Session revoked"}


@pytest.mark.asyncio
async def test_token_for_foreign_org_is_forbidden(client, db, test_auth):
    other_org = Organization(name="Other", slug="other-claim")
    db.add(other_org)
    db.commit()
    token = create_session_token(
        user_id=test_auth.user.id,
        org_id=other_org.id,
        role="admin",
        token_version=test_auth.user.token_version,
    )
    client.cookies.set(test_auth.cookie_name, token)
    res = await client.get("/auth/me")
    assert res.status_code == 403
    assert res.json() == {"error": "No organization membership"}


# =============================================================================
# Dev
# =============================================================================

@pytest.mark.asyncio
async def test_dev_seed_is_idempotent_and_login_as_sets_cookie(client):
    headers = {"X-Dev-Secret": settings.DEV_SECRET}

    res = await client.post("/dev/seed", headers=headers)
    assert res.status_code == 200
    seeded = res.json()
    assert seeded["status"] == "seeded"

    res = await client.post("/dev/seed", headers=headers)
    assert res.json() == {"status": "already_seeded", "org_id": seeded["org_id"]}

    admin_id = seeded["users"][0]["user_id"]
    res = await client.post(f"/dev/login-as/{admin_id}", headers=headers)
    assert res.status_code == 200
    assert res.json()["status"] == "logged_in"
    assert "aliice_session" in res.headers["set-cookie"]


@pytest.mark.asyncio
async def test_dev_routes_require_secret(client):
    res = await client.post("/dev/seed", headers={"X-Dev-Secret": "wrong"})
    assert res.status_code == 403


# =============================================================================
# Rate limit keys
# =============================================================================

def _request(headers=()):
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers],
        "client": ("203.0.113.7", 5000),
    })


def test_rate_limit_key_uses_session_user(test_auth):
    request = _request([("Authorization", f"Bearer {test_auth.token}")])
    assert session_or_ip(request) == f"user:{test_auth.user.id}"


def test_rate_limit_key_falls_back_to_ip():
    assert session_or_ip(_request()) == "ip:203.0.113.7"
    assert session_or_ip(_request([("Authorization", "Bearer not-a-jwt")])) == "ip:203.0.113.7"


# =============================================================================
# Error envelope
# =============================================================================

@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    res = await client.get("/no-such-route")
    assert res.status_code == 404
    assert res.json() == {"error": "Not Found"}


@pytest.mark.asyncio
async def test_wrong_method_uses_error_envelope(client):
    res = await client.delete("/health")
    assert res.status_code == 405
    assert res.json() == {"error": "Method Not Allowed"}
