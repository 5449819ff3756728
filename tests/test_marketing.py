"""Campaign attribution, lead lifecycle, KPIs and shared reports."""

import uuid
from datetime import date, datetime, timezone

import pytest

from aliice.db.models import MarketingCampaign, MarketingExpenseLog, MarketingLead
from aliice.services import marketing_metrics
from aliice.services.marketing_service import match_campaign, normalize_utm


def _campaign(name, utm=None, channel="google_ads"):
    return MarketingCampaign(id=uuid.uuid4(), name=name, utm_campaign=utm, channel=channel)


def _expense(day, spend, channel="google_ads", clicks=None, impressions=None,
             country=None, region=None, campaign_name=None):
    return MarketingExpenseLog(
        date_start=day,
        date_end=day,
        spend_amount=spend,
        channel=channel,
        manual_clicks=clicks,
        manual_impressions=impressions,
        manual_conversions=None,
        country=country,
        region=region,
        campaign_name=campaign_name,
    )


def _lead(created_at, status="open", value=None, channel=None, country=None, region=None, campaign_id=None):
    return MarketingLead(
        created_at=created_at,
        deal_status=status,
        deal_value=value,
        channel=channel,
        country=country,
        region=region,
        campaign_id=campaign_id,
    )


# =============================================================================
# Attribution
# =============================================================================

def test_normalize_utm():
    assert normalize_utm("Summer_Sale-2024") == "summer sale 2024"


def test_match_campaign_by_utm_or_name():
    summer = _campaign("Summer Sale")
    botox = _campaign("Botox", utm="botox_q3")
    campaigns = [summer, botox]

    assert match_campaign("summer-sale", campaigns) is summer
    assert match_campaign("BOTOX_Q3", campaigns) is botox
    # tag containing the campaign name
    assert match_campaign("botox-instagram", campaigns) is botox
    assert match_campaign("unrelated", campaigns) is None
    assert match_campaign(None, campaigns) is None


def test_first_matching_campaign_wins():
    first = _campaign("Sale")
    second = _campaign("Sale", utm="sale")
    assert match_campaign("sale", [first, second]) is first


# =============================================================================
# Metrics
# =============================================================================

def test_geo_key():
    assert marketing_metrics.geo_key("Dubai", "UAE") == "Dubai, UAE"
    assert marketing_metrics.geo_key(None, "UAE") == "UAE"
    assert marketing_metrics.geo_key("Dubai", None) == "Dubai"
    assert marketing_metrics.geo_key(None, None) == "Unknown"


def test_empty_range_has_zero_ratios():
    summary = marketing_metrics.compute_summary([], [])
    assert summary.cpl == summary.cpc == summary.ctr == summary.roas == summary.conversion_rate == 0


def test_build_metrics_summary_and_breakdowns():
    summer = _campaign("Summer Sale")
    expenses = [
        _expense(date(2024, 5, 1), 100, clicks=50, impressions=1000, country="UAE", campaign_name="summer_sale"),
        _expense(date(2024, 5, 2), 50, channel="meta_ads", campaign_name="Nope"),
        _expense(date(2024, 6, 1), 999),
    ]
    leads = [
        _lead(datetime(2024, 5, 1, 10, tzinfo=timezone.utc), status="won", value=300,
              channel="google_ads", country="UAE", region="Dubai", campaign_id=summer.id),
        _lead(datetime(2024, 5, 31, 23, 59, 59, tzinfo=timezone.utc)),
        _lead(datetime(2024, 7, 1, tzinfo=timezone.utc), status="won", value=1000),
    ]

    metrics = marketing_metrics.build_metrics(
        expenses, leads, [summer], date(2024, 5, 1), date(2024, 5, 31)
    )

    s = metrics.summary
    assert (s.spend, s.clicks, s.impressions, s.leads, s.won, s.revenue) == (150, 50, 1000, 2, 1, 300)
    assert s.cpl == 75
    assert s.cpc == 3
    assert s.ctr == 5
    assert s.roas == 2
    assert s.conversion_rate == 50

    assert [r.key for r in metrics.by_channel] == ["google_ads", "meta_ads"]
    assert metrics.by_channel[0].leads == 1

    assert [r.key for r in metrics.by_geo] == ["UAE", "Unknown", "Dubai, UAE"]
    unknown = metrics.by_geo[1]
    assert (unknown.spend, unknown.leads) == (50, 1)

    assert [(r.key, r.spend, r.leads) for r in metrics.by_campaign] == [
        ("Summer Sale", 100, 1),
        ("Unattributed", 0, 1),
    ]


# =============================================================================
# API
# =============================================================================

async def _project(client):
    res = await client.post("/projects", json={"name": "Clinic launch", "project_type": "marketing"})
    assert res.status_code == 201
    return res.json()


@pytest.mark.asyncio
async def test_lead_attributed_to_campaign_on_insert(authed_client):
    project = await _project(authed_client)
    base = f"/marketing/projects/{project['id']}"
    campaign = (await authed_client.post(f"{base}/campaigns", json={
        "name": "Summer Sale", "channel": "meta_ads",
    })).json()

    res = await authed_client.post(f"{base}/leads", json={
        "email": "lead@example.com", "utm_campaign": "summer_sale",
    })
    assert res.status_code == 201
    lead = res.json()
    assert lead["campaign_id"] == campaign["id"]
    assert lead["channel"] == "meta_ads"
    assert lead["converted_at"] is None


@pytest.mark.asyncio
async def test_lead_needs_email_or_phone(authed_client):
    project = await _project(authed_client)
    res = await authed_client.post(f"/marketing/projects/{project['id']}/leads", json={"first_name": "A"})
    assert res.status_code == 400
    assert res.json() == {"error": "Email or phone is required"}


@pytest.mark.asyncio
async def test_deal_status_stamps_converted_at_once(authed_client):
    project = await _project(authed_client)
    base = f"/marketing/projects/{project['id']}/leads"
    lead = (await authed_client.post(base, json={"phone": "+971500000000"})).json()

    won = (await authed_client.patch(f"{base}/{lead['id']}", json={"deal_status": "won", "deal_value": 500})).json()
    assert won["converted_at"] is not None

    again = (await authed_client.patch(f"{base}/{lead['id']}", json={"deal_status": "won"})).json()
    assert again["converted_at"] == won["converted_at"]

    lost = (await authed_client.patch(f"{base}/{lead['id']}", json={"deal_status": "lost"})).json()
    assert lost["converted_at"] is None


@pytest.mark.asyncio
async def test_public_submit_forces_open_status(authed_client, client):
    project = await _project(authed_client)

    res = await client.post("/marketing/leads/submit", json={
        "project_id": project["id"],
        "email": "web@example.com",
        "deal_status": "won",
        "deal_value": 999,
        "gclid": "abc123",
    })
    assert res.status_code == 201
    body = res.json()
    assert body["deal_status"] == "open"
    assert body["deal_value"] is None
    assert body["converted_at"] is None

    res = await client.post("/marketing/leads/submit", json={
        "project_id": str(uuid.uuid4()), "email": "web@example.com",
    })
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_metrics_endpoint_and_public_report(authed_client, client):
    project = await _project(authed_client)
    base = f"/marketing/projects/{project['id']}"
    today = datetime.now(timezone.utc).date().isoformat()
    await authed_client.post(f"{base}/expenses", json={
        "date_start": today, "channel": "google_ads", "spend_amount": 200, "manual_clicks": 40,
    })
    await authed_client.post(f"{base}/leads", json={"email": "a@example.com", "channel": "google_ads"})

    res = await authed_client.get(f"{base}/metrics", params={"start": today, "end": today})
    assert res.status_code == 200
    summary = res.json()["summary"]
    assert summary["spend"] == 200
    assert summary["cpc"] == 5
    assert summary["cpl"] == 200

    res = await authed_client.get(f"{base}/metrics", params={"start": today, "end": "2000-01-01"})
    assert res.status_code == 400

    report = (await authed_client.post(f"{base}/reports", json={
        "title": "Weekly", "start": today, "end": today,
    })).json()
    assert report["snapshot"]["summary"]["spend"] == 200

    res = await client.get(f"/marketing/reports/public/{report['public_token']}")
    assert res.status_code == 200
    assert res.json()["title"] == "Weekly"

    res = await client.get("/marketing/reports/public/not-a-token")
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_campaign_dates_validated(authed_client):
    project = await _project(authed_client)
    res = await authed_client.post(f"/marketing/projects/{project['id']}/campaigns", json={
        "name": "Backwards", "start_date": "2024-05-10", "end_date": "2024-05-01",
    })
    assert res.status_code == 400
