"""Companies, contacts, projects, patients and the user roster."""

import pytest

from aliice.db.models import Contact


@pytest.mark.asyncio
async def test_company_crud_round_trip(authed_client):
    res = await authed_client.post("/companies", json={"name": "  Acme Clinic ", "industry": "Health"})
    assert res.status_code == 201
    company = res.json()
    assert company["name"] == "Acme Clinic"

    res = await authed_client.patch(
        f"/companies/{company['id']}",
        json={"brand_primary_color": "#112233", "town": "Dubai"},
    )
    assert res.status_code == 200

    res = await authed_client.get(f"/companies/{company['id']}")
    body = res.json()
    assert body["brand_primary_color"] == "#112233"
    assert body["town"] == "Dubai"
    assert body["industry"] == "Health"

    res = await authed_client.delete(f"/companies/{company['id']}")
    assert res.status_code == 204
    res = await authed_client.get(f"/companies/{company['id']}")
    assert res.status_code == 404
    assert res.json() == {"error": "Company not found"}


@pytest.mark.asyncio
async def test_company_list_filters_and_orders_by_name(authed_client):
    for name in ("Zeta Labs", "Alpha Dental", "Beta Labs"):
        await authed_client.post("/companies", json={"name": name})

    res = await authed_client.get("/companies")
    assert [c["name"] for c in res.json()] == ["Alpha Dental", "Beta Labs", "Zeta Labs"]

    res = await authed_client.get("/companies", params={"q": "labs"})
    assert [c["name"] for c in res.json()] == ["Beta Labs", "Zeta Labs"]


@pytest.mark.asyncio
async def test_company_notes_are_sanitized(authed_client):
    res = await authed_client.post(
        "/companies",
        json={"name": "Acme", "notes": "<p>ok</p><script>alert(1)</script>"},
    )
    assert res.status_code == 201
    assert "<script>" not in res.json()["notes"]
    assert "<p>ok</p>" in res.json()["notes"]


@pytest.mark.asyncio
async def test_contact_requires_names_and_inserts_nothing(authed_client, db):
    company = (await authed_client.post("/companies", json={"name": "Acme"})).json()

    res = await authed_client.post(
        "/contacts",
        json={"company_id": company["id"], "first_name": "  ", "last_name": "Doe"},
    )
    assert res.status_code == 400
    assert res.json()["error"] == "First and last name are required."
    assert db.query(Contact).count() == 0


@pytest.mark.asyncio
async def test_single_primary_contact_per_company(authed_client):
    company = (await authed_client.post("/companies", json={"name": "Acme"})).json()
    first = (await authed_client.post("/contacts", json={
        "company_id": company["id"], "first_name": "Ann", "last_name": "Lee", "is_primary": True,
    })).json()
    second = (await authed_client.post("/contacts", json={
        "company_id": company["id"], "first_name": "Bo", "last_name": "Kim", "is_primary": True,
    })).json()

    res = await authed_client.get(f"/companies/{company['id']}/contacts")
    contacts = {c["id"]: c for c in res.json()}
    assert contacts[second["id"]]["is_primary"] is True
    assert contacts[first["id"]]["is_primary"] is False


@pytest.mark.asyncio
async def test_project_value_accepts_thousands_separator(authed_client):
    res = await authed_client.post("/projects", json={
        "name": "Website", "project_type": "web", "value": "12,500.50",
    })
    assert res.status_code == 201
    assert res.json()["value"] == 12500.5


@pytest.mark.asyncio
async def test_project_requires_type(authed_client):
    res = await authed_client.post("/projects", json={"name": "Website", "project_type": "   "})
    assert res.status_code == 400


def _intake(**overrides):
    payload = {"first_name": "Sara", "last_name": "Ali", "consent_accepted": True}
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_patient_intake_requires_consent_and_contact(authed_client):
    res = await authed_client.post("/patients/intake", json=_intake(consent_accepted=False, phone="+971500000000"))
    assert res.status_code == 400
    assert res.json() == {"error": "Consent is required"}

    res = await authed_client.post("/patients/intake", json=_intake(email="   ", phone=" "))
    assert res.status_code == 400
    assert res.json() == {"error": "Email or phone is required."}

    res = await authed_client.post("/patients/intake", json=_intake(phone="+971500000000"))
    assert res.status_code == 201
    assert res.json()["source"] == "manual"


@pytest.mark.asyncio
async def test_patient_intake_updates_existing_patient(authed_client):
    first = await authed_client.post("/patients/intake", json=_intake(
        email="ann@example.com", health={"allergies": "none"},
    ))
    assert first.status_code == 201

    second = await authed_client.post("/patients/intake", json=_intake(
        first_name="Ann", email=" ANN@example.com ", nationality="French",
    ))
    assert second.status_code == 200
    body = second.json()
    assert body["id"] == first.json()["id"]
    assert body["first_name"] == "Ann"
    assert body["email"] == "ann@example.com"
    assert body["nationality"] == "French"
    assert body["notes"].count("[Lead form]") == 2
    assert '"allergies": "none"' in body["notes"]

    patients = (await authed_client.get("/patients")).json()
    assert len(patients) == 1


@pytest.mark.asyncio
async def test_patient_intake_matches_by_phone(authed_client):
    first = (await authed_client.post("/patients/intake", json=_intake(phone="+971 500000000"))).json()
    second = await authed_client.post("/patients/intake", json=_intake(
        email="new@example.com", phone="+971 500000000",
    ))
    assert second.status_code == 200
    assert second.json()["id"] == first["id"]
    assert second.json()["email"] == "new@example.com"


@pytest.mark.asyncio
async def test_patient_intake_lookup(authed_client):
    res = await authed_client.post("/patients/intake/lookup", json={"email": " "})
    assert res.status_code == 400

    res = await authed_client.post("/patients/intake/lookup", json={"email": "nobody@example.com"})
    assert res.json() == {"patient": None}

    await authed_client.post("/patients/intake", json=_intake(email="sara@example.com"))
    res = await authed_client.post("/patients/intake/lookup", json={"email": "SARA@example.com"})
    assert res.status_code == 200
    assert res.json()["patient"]["first_name"] == "Sara"


@pytest.mark.asyncio
async def test_patient_list_filters_by_source(authed_client):
    await authed_client.post("/patients", json={"first_name": "A", "last_name": "One", "source": "event"})
    await authed_client.post("/patients", json={"first_name": "B", "last_name": "Two"})

    res = await authed_client.get("/patients", params={"source": "event"})
    assert [p["first_name"] for p in res.json()] == ["A"]


@pytest.mark.asyncio
async def test_user_roster_ordered_by_full_name(authed_client, make_user):
    make_user(full_name="Zed Admin")
    make_user(full_name="Amy Staff")

    res = await authed_client.get("/api/users/list")
    assert res.status_code == 200
    names = [u["full_name"] for u in res.json()]
    assert names == sorted(names)
    assert {"Zed Admin", "Amy Staff", "Test User"} <= set(names)


@pytest.mark.asyncio
async def test_mutations_require_csrf_header(db, test_auth, client):
    client.cookies.set(test_auth.cookie_name, test_auth.token)
    res = await client.post("/companies", json={"name": "Acme"})
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_unauthenticated_requests_are_rejected(client):
    res = await client.get("/companies")
    assert res.status_code == 401
    assert res.json() == {"error": "Not authenticated"}
