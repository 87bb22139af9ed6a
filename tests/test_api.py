"""
HTTP API tests
==============
Exercise the FastAPI app end to end against a temporary SQLite database,
with Textract and Gemini replaced by in-memory fakes.
"""

import asyncio

import pytest

from campaign_detector.core.config import get_settings
from campaign_detector.services.text_alignment import TextAlignmentService

API = "/api/v1"


def insert(client, payload, **overrides):
    response = client.post(f"{API}/campaigns", json={**payload, **overrides})
    assert response.status_code == 201, response.text
    return response.json()["id"]


class TestHealth:

    def test_health(self, client):
        response = client.get(f"{API}/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == get_settings().version
        assert response.headers["X-Request-ID"]

    def test_request_id_is_echoed(self, client):
        response = client.get(f"{API}/health/live", headers={"X-Request-ID": "req-123"})
        assert response.json() == {"status": "alive"}
        assert response.headers["X-Request-ID"] == "req-123"

    def test_ready(self, client):
        response = client.get(f"{API}/health/ready")
        assert response.status_code == 200
        body = response.json()
        assert body["ready"] is True
        assert body["checks"]["database"] is True


class TestCampaigns:

    def test_insert_and_list(self, client, campaign_payload):
        campaign_id = insert(client, campaign_payload, image_urls=["https://cdn.example.com/hero.png"])

        response = client.get(f"{API}/campaigns")
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["limit"] == 100
        assert body["offset"] == 0
        stored = body["data"][0]
        assert stored["id"] == campaign_id
        assert stored["company_name"] == "Acme Outdoors"
        assert stored["occurrences"] == 1
        assert stored["image_urls"] == ["https://cdn.example.com/hero.png"]

    def test_sent_at_defaults_to_now(self, client, campaign_payload):
        payload = {key: value for key, value in campaign_payload.items() if key != "sent_at"}
        insert(client, payload)
        assert client.get(f"{API}/campaigns").json()["data"][0]["sent_at"]

    def test_search_filter(self, client, campaign_payload):
        insert(client, campaign_payload)
        insert(client, campaign_payload, company_name="Globex", campaign="Winter Boots",
               body="Winter boots clearance, 30% off.")

        body = client.get(f"{API}/campaigns", params={"search": "TENTS"}).json()
        assert body["count"] == 1
        assert body["data"][0]["company_name"] == "Acme Outdoors"

        body = client.get(f"{API}/campaigns", params={"search": "globex"}).json()
        assert [c["campaign"] for c in body["data"]] == ["Winter Boots"]

    def test_search_treats_wildcards_literally(self, client, campaign_payload):
        insert(client, campaign_payload)
        insert(client, campaign_payload, body="No discount here")

        body = client.get(f"{API}/campaigns", params={"search": "50%"}).json()
        assert body["count"] == 1

    def test_sort_and_paginate(self, client, campaign_payload):
        insert(client, campaign_payload, campaign="First", sent_at="2024-01-01T00:00:00+00:00")
        insert(client, campaign_payload, campaign="Second", sent_at="2024-02-01T00:00:00+00:00")
        insert(client, campaign_payload, campaign="Third", sent_at="2024-03-01T00:00:00+00:00")

        newest_first = client.get(f"{API}/campaigns").json()
        assert [c["campaign"] for c in newest_first["data"]] == ["Third", "Second", "First"]

        page = client.get(
            f"{API}/campaigns",
            params={"sortBy": "sent_at", "sortOrder": "asc", "limit": 1, "offset": 1},
        ).json()
        assert [c["campaign"] for c in page["data"]] == ["Second"]
        assert page["count"] == 3

    def test_invalid_sort_column(self, client):
        response = client.get(f"{API}/campaigns", params={"sortBy": "body; DROP TABLE campaigns"})
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "INVALID_INPUT"
        assert error["details"]["field"] == "sortBy"

    @pytest.mark.parametrize("field,value", [
        ("company_name", ""),
        ("body", ""),
        ("sent_at", "2024-06-01T09:00:00"),
        ("sent_at", "yesterday"),
    ])
    def test_insert_validation(self, client, campaign_payload, field, value):
        response = client.post(f"{API}/campaigns", json={**campaign_payload, field: value})
        assert response.status_code == 422

    def test_insert_requires_fields(self, client):
        response = client.post(f"{API}/campaigns", json={"company_name": "Acme"})
        assert response.status_code == 422


class TestUpload:

    def test_requires_file(self, client):
        response = client.post(f"{API}/upload", data={"compare_images": "false"})
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "A file is required."

    def test_rejects_empty_file(self, client):
        response = client.post(f"{API}/upload", files={"file": ("empty.png", b"", "image/png")})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_rejects_large_file(self, client, monkeypatch, fake_ocr):
        monkeypatch.setattr(get_settings(), "max_upload_bytes", 8)
        response = client.post(f"{API}/upload", files={"file": ("big.png", b"0123456789", "image/png")})
        assert response.status_code == 413
        assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"
        assert fake_ocr.calls == []

    def test_returns_similar_campaigns(self, client, campaign_payload, fake_ocr):
        acme_id = insert(client, campaign_payload)
        insert(client, campaign_payload, company_name="Globex", body="Quarterly investor newsletter")
        fake_ocr.text = "Summer sale\n50% off all premium tents"

        response = client.post(f"{API}/upload", files={"file": ("ad.pdf", b"%PDF-1.4 data", "application/pdf")})

        assert response.status_code == 200
        body = response.json()
        assert body["text"] == "Summer sale\n50% off all premium tents"
        assert body["matches"][0]["id"] == acme_id
        assert 0 < body["matches"][0]["similarity"] <= 1
        similarities = [match["similarity"] for match in body["matches"]]
        assert similarities == sorted(similarities, reverse=True)
        assert "imageComparisons" not in body
        assert fake_ocr.calls == [b"%PDF-1.4 data"]

    def test_blank_text_skips_search(self, client, campaign_payload, fake_ocr):
        insert(client, campaign_payload)
        fake_ocr.text = "  \n "

        body = client.post(f"{API}/upload", files={"file": ("ad.png", b"\x89PNG", "image/png")}).json()

        assert body["matches"] == []

    def test_compare_images(self, client, campaign_payload, fake_ocr, fake_images):
        with_images = insert(client, campaign_payload, image_urls=["https://cdn.example.com/hero.png"])
        insert(client, campaign_payload, campaign="Summer Sale Reminder")
        fake_ocr.text = campaign_payload["body"]

        response = client.post(
            f"{API}/upload",
            files={"file": ("ad.png", b"\x89PNG upload", "image/png")},
            data={"compare_images": "true"},
        )

        assert response.status_code == 200
        comparisons = response.json()["imageComparisons"]
        assert comparisons == [{
            "matchId": with_images,
            "isSimilar": True,
            "confidence": 0.9,
            "reasoning": "Same layout and branding",
            "details": "Identical hero image",
        }]
        assert fake_images.calls == [([b"\x89PNG upload"], [b"https://cdn.example.com/hero.png"])]


class TestConfirm:

    def test_increments_occurrences(self, client, campaign_payload):
        campaign_id = insert(client, campaign_payload)

        first = client.post(f"{API}/confirm", json={"id": campaign_id})
        second = client.post(f"{API}/confirm", json={"id": campaign_id})

        assert first.json() == {"success": True, "occurrences": 2}
        assert second.json() == {"success": True, "occurrences": 3}
        assert client.get(f"{API}/campaigns").json()["data"][0]["occurrences"] == 3

    def test_unknown_campaign(self, client):
        response = client.post(f"{API}/confirm", json={"id": 999})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    @pytest.mark.parametrize("payload", [{"id": 0}, {"id": -1}, {"id": "1"}, {}])
    def test_invalid_id(self, client, payload):
        assert client.post(f"{API}/confirm", json=payload).status_code == 422


class TestHighlight:

    def test_exact(self, client):
        response = client.post(f"{API}/highlight", json={
            "reference": "Summer sale: 50% off all premium tents",
            "candidate": "Summer sale: 50% off all premium tents",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "exact"
        assert body["segments"] == [{"text": "Summer sale: 50% off all premium tents", "isMatch": True}]
        assert body["coverage"] == 1.0
        assert body["matchedChars"] == body["totalChars"]
        assert body["truncated"] is False

    def test_words(self, client):
        response = client.post(f"{API}/highlight", json={
            "reference": "premium services",
            "candidate": "services premium",
            "mode": "words",
        })

        body = response.json()
        assert body["mode"] == "words"
        assert body["segments"] == [
            {"text": "services", "isMatch": True},
            {"text": " ", "isMatch": False},
            {"text": "premium", "isMatch": True},
        ]

    def test_empty_reference(self, client):
        body = client.post(f"{API}/highlight", json={"candidate": "hello world"}).json()
        assert body["segments"] == [{"text": "hello world", "isMatch": False}]
        assert body["coverage"] == 0.0

    def test_unknown_mode(self, client):
        response = client.post(f"{API}/highlight", json={"reference": "a", "candidate": "a", "mode": "fuzzy"})
        assert response.status_code == 422

    def test_stored_campaign(self, client, campaign_payload):
        campaign_id = insert(client, campaign_payload)

        response = client.post(
            f"{API}/campaigns/{campaign_id}/highlight",
            json={"reference": "Summer sale: 50% off all premium tents"},
        )

        assert response.status_code == 200
        segments = response.json()["segments"]
        assert "".join(s["text"] for s in segments) == campaign_payload["body"]
        assert segments[0] == {"text": "Summer sale: 50% off all premium tents", "isMatch": True}
        assert segments[-1]["isMatch"] is False

    def test_stored_campaign_not_found(self, client):
        response = client.post(f"{API}/campaigns/999/highlight", json={"reference": "text"})
        assert response.status_code == 404

    @pytest.fixture
    def alignment_threads(self, monkeypatch):
        """Record whether each alignment ran on the event loop or in a worker thread."""
        calls = []
        original = TextAlignmentService.align

        def recording(self, *args, **kwargs):
            try:
                asyncio.get_running_loop()
                calls.append("event_loop")
            except RuntimeError:
                calls.append("worker")
            return original(self, *args, **kwargs)

        monkeypatch.setattr(TextAlignmentService, "align", recording)
        return calls

    def test_highlight_runs_off_the_event_loop(self, client, alignment_threads):
        response = client.post(f"{API}/highlight", json={"reference": "abc", "candidate": "abc"})
        assert response.status_code == 200
        assert alignment_threads == ["worker"]

    def test_stored_campaign_highlight_runs_off_the_event_loop(self, client, campaign_payload, alignment_threads):
        campaign_id = insert(client, campaign_payload)
        response = client.post(f"{API}/campaigns/{campaign_id}/highlight", json={"reference": "Summer sale"})
        assert response.status_code == 200
        assert alignment_threads == ["worker"]
