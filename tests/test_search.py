"""Global search."""

import pytest


@pytest.mark.asyncio
async def test_short_query_returns_empty_groups(authed_client):
    await authed_client.post("/companies", json={"name": "Acme"})
    res = await authed_client.get("/search", params={"q": " a "})
    assert res.status_code == 200
    body = res.json()
    assert body["query"] == "a"
    assert body["companies"] == []


@pytest.mark.asyncio
async def test_search_groups_hits_by_type(authed_client):
    company = (await authed_client.post("/companies", json={"name": "Derma Care", "industry": "Clinic"})).json()
    await authed_client.post("/contacts", json={
        "company_id": company["id"], "first_name": "Derek", "last_name": "Ray", "email": "d@x.com",
    })
    await authed_client.post("/patients", json={"first_name": "Sara", "last_name": "Dermott"})
    await authed_client.post("/danote/boards", json={"name": "Derma launch"})
    await authed_client.post("/companies", json={"name": "Unrelated"})

    res = await authed_client.get("/search", params={"q": "der"})
    body = res.json()
    assert [h["title"] for h in body["companies"]] == ["Derma Care"]
    assert body["companies"][0]["subtitle"] == "Clinic"
    assert [h["title"] for h in body["contacts"]] == ["Derek Ray"]
    assert [h["title"] for h in body["patients"]] == ["Sara Dermott"]
    assert [h["title"] for h in body["boards"]] == ["Derma launch"]
    assert body["projects"] == []


@pytest.mark.asyncio
async def test_wildcards_are_stripped(authed_client):
    await authed_client.post("/companies", json={"name": "Acme"})
    res = await authed_client.get("/search", params={"q": "%%"})
    assert res.json()["query"] == ""
    assert res.json()["companies"] == []
