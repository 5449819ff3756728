"""Account clients, stored documents and statements of account."""

import os

import pytest

from aliice.core.config import settings
from aliice.db.models import Organization


async def _client_with_adhoc(authed_client):
    client = (await authed_client.post("/accounts/clients", json={
        "client_name": "Acme Clinic",
        "retainer_fee": 5000,
        "service_based_fee": 1500.5,
        "contract_type": "retainer",
    })).json()
    base = f"/accounts/clients/{client['id']}/adhoc"
    await authed_client.post(base, json={
        "date_requested": "2024-05-01", "description": "Shoot", "amount": 100, "status": "completed",
    })
    await authed_client.post(base, json={
        "date_requested": "2024-05-02",
        "description": "Extra, design",
        "service_date_start": "2024-05-03",
        "service_date_end": "2024-05-04",
        "amount": 250,
    })
    return client


@pytest.mark.asyncio
async def test_client_defaults_currency(authed_client):
    res = await authed_client.post("/accounts/clients", json={"client_name": "  Acme  "})
    assert res.status_code == 201
    assert res.json()["client_name"] == "Acme"
    assert res.json()["currency"] == settings.DEFAULT_CURRENCY


@pytest.mark.asyncio
async def test_adhoc_service_dates_validated(authed_client):
    client = (await authed_client.post("/accounts/clients", json={"client_name": "Acme"})).json()
    res = await authed_client.post(f"/accounts/clients/{client['id']}/adhoc", json={
        "date_requested": "2024-05-01",
        "description": "Backwards",
        "service_date_start": "2024-05-10",
        "service_date_end": "2024-05-01",
    })
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_soa_csv(authed_client):
    client = await _client_with_adhoc(authed_client)
    res = await authed_client.get(f"/accounts/clients/{client['id']}/soa")

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert 'filename="SOA_Acme_Clinic_' in res.headers["content-disposition"]

    lines = res.text.split("\n")
    assert lines[0] == "Statement of Account - Acme Clinic"
    assert "Retainer Fee,5000" in lines
    assert "Service Based Fee,1500.50" in lines
    assert "Ad-Hoc Total,350" in lines
    assert "TOTAL,6850.50" in lines
    assert lines[-2:] == [
        "2024-05-02,Extra; design,2024-05-03 - 2024-05-04,250,pending",
        "2024-05-01,Shoot,,100,completed",
    ]


@pytest.mark.asyncio
async def test_soa_json_totals(authed_client):
    client = await _client_with_adhoc(authed_client)
    res = await authed_client.get(f"/accounts/clients/{client['id']}/soa", params={"format": "json"})

    body = res.json()
    assert body["client"]["name"] == "Acme Clinic"
    assert body["fees"] == {"retainer": 5000, "serviceBased": 1500.5, "adhoc": 350, "total": 6850.5}
    assert [item["description"] for item in body["adhocItems"]] == ["Extra, design", "Shoot"]
    assert res.headers["content-disposition"].endswith('.json"')


@pytest.mark.asyncio
async def test_soa_pdf(authed_client):
    client = await _client_with_adhoc(authed_client)
    res = await authed_client.get(f"/accounts/clients/{client['id']}/soa", params={"format": "pdf"})
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert res.content.startswith(b"%PDF")


# =============================================================================
# Documents
# =============================================================================

@pytest.fixture
def local_storage(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(tmp_path))
    return tmp_path


@pytest.mark.asyncio
async def test_document_upload_serve_and_delete(authed_client, client_for, db, make_user, local_storage):
    client = (await authed_client.post("/accounts/clients", json={"client_name": "Acme"})).json()
    content = b"%PDF-1.4 scope of work"

    res = await authed_client.post(
        f"/accounts/clients/{client['id']}/documents",
        files={"file": ("scope.pdf", content, "application/pdf")},
        data={"title": "Scope", "document_type": "sow"},
    )
    assert res.status_code == 201
    document = res.json()
    assert document["title"] == "Scope"
    assert document["document_type"] == "sow"
    assert document["file_size"] == len(content)
    assert document["file_url"].startswith("/files/")

    res = await authed_client.get(document["file_url"])
    assert res.status_code == 200
    assert res.content == content

    other_org = Organization(name="Other", slug="other-accounts")
    db.add(other_org)
    db.commit()
    outsider = make_user(full_name="Out Sider", org=other_org)
    async with client_for(outsider, other_org) as c:
        res = await c.get(document["file_url"])
    assert res.status_code == 404

    stored = [os.path.join(root, name) for root, _, names in os.walk(local_storage) for name in names]
    assert len(stored) == 1

    res = await authed_client.delete(f"/accounts/clients/{client['id']}/documents/{document['id']}")
    assert res.status_code == 204
    assert not os.path.exists(stored[0])


@pytest.mark.asyncio
async def test_document_extension_rejected(authed_client, local_storage):
    client = (await authed_client.post("/accounts/clients", json={"client_name": "Acme"})).json()
    res = await authed_client.post(
        f"/accounts/clients/{client['id']}/documents",
        files={"file": ("run.exe", b"MZ", "application/octet-stream")},
    )
    assert res.status_code == 400
    assert res.json() == {"error": "File extension '.exe' not allowed"}
