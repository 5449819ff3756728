"""CSV ad spend import."""

from datetime import date

import pytest

from aliice.db.enums import MarketingChannel
from aliice.services import expense_import_service as importer

GOOGLE_EXPORT = (
    "Day,Campaign,Cost,Clicks,Impr.\n"
    '2024-05-01,Summer_Sale,"$1,200.50",10,"1,000"\n'
    "not a date,Summer_Sale,5,1,1\n"
    '2024-05-01,Summer_Sale,"$1,200.50",10,"1,000"\n'
    "\n"
    "05/02/2024,,30,,\n"
)


def test_map_headers_first_keyword_wins():
    mapping = importer.map_headers(["Day", "Campaign name", "Amount spent (AED)", "Link clicks", "Country"])
    assert mapping == {
        "date_start": 0,
        "campaign_name": 1,
        "spend_amount": 2,
        "clicks": 3,
        "country": 4,
    }


@pytest.mark.parametrize("raw,expected", [
    ("2024-05-01", date(2024, 5, 1)),
    ("2024/05/01", date(2024, 5, 1)),
    ("05/01/2024", date(2024, 5, 1)),
    ("May 01, 2024", date(2024, 5, 1)),
    ("2024-05-01T23:00:00Z", date(2024, 5, 1)),
    ("yesterday", None),
    ("", None),
])
def test_parse_date(raw, expected):
    assert importer.parse_date(raw) == expected


def test_parse_numbers():
    assert importer.parse_spend("AED 1,234.50") == 1234.5
    assert importer.parse_spend("n/a") == 0.0
    assert importer.parse_int("1,024") == 1024
    assert importer.parse_int("") is None


def test_parse_channel_falls_back_to_default():
    assert importer.parse_channel("Google Ads", MarketingChannel.OTHER) == "google_ads"
    assert importer.parse_channel("billboard", MarketingChannel.META_ADS) == "meta_ads"


def test_detect_encoding():
    assert importer.detect_encoding(b"\xef\xbb\xbfDay,Cost\n") == "utf-8-sig"
    assert importer.detect_encoding("Day,Cost\n".encode("utf-8")) == "utf-8"


def test_parse_rows_counts_skipped_and_defaults_campaign():
    rows, skipped = importer.parse_rows(GOOGLE_EXPORT, MarketingChannel.GOOGLE_ADS)
    assert skipped == 1
    assert len(rows) == 3
    assert rows[0].spend_amount == 1200.5
    assert rows[0].impressions == 1000
    assert rows[2].campaign_name == importer.UNKNOWN_CAMPAIGN
    assert rows[2].channel == "google_ads"
    assert rows[0].import_hash == rows[1].import_hash


def test_missing_date_column_rejected():
    with pytest.raises(ValueError, match="no date column"):
        importer.parse_rows("Campaign,Cost\nA,1\n", MarketingChannel.OTHER)


@pytest.mark.asyncio
async def test_upload_dedupes_within_and_across_files(authed_client):
    project = (await authed_client.post("/projects", json={"name": "Ads", "project_type": "marketing"})).json()
    url = f"/marketing/projects/{project['id']}/expenses/import"
    files = {"file": ("google.csv", GOOGLE_EXPORT.encode("utf-8"), "text/csv")}

    res = await authed_client.post(url, files=files, data={"channel": "google_ads"})
    assert res.status_code == 200
    assert res.json() == {"imported": 2, "duplicates": 1, "skipped": 1}

    res = await authed_client.post(url, files=files, data={"channel": "google_ads"})
    assert res.json() == {"imported": 0, "duplicates": 3, "skipped": 1}

    expenses = (await authed_client.get(f"/marketing/projects/{project['id']}/expenses")).json()
    assert len(expenses) == 2
    assert {e["import_source"] for e in expenses} == {"csv"}
    assert {e["import_filename"] for e in expenses} == {"google.csv"}


@pytest.mark.asyncio
async def test_upload_empty_file(authed_client):
    project = (await authed_client.post("/projects", json={"name": "Ads", "project_type": "marketing"})).json()
    res = await authed_client.post(
        f"/marketing/projects/{project['id']}/expenses/import",
        files={"file": ("empty.csv", b"", "text/csv")},
    )
    assert res.status_code == 400
    assert res.json() == {"error": "File is empty"}
