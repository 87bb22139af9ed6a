"""Shared fixtures: temporary database, fake external services, API client."""
from typing import List, Sequence

import pytest
from fastapi.testclient import TestClient

from campaign_detector.core.config import get_settings
from campaign_detector.services.image_comparison import ImageComparison


class FakeOCRService:
    """Returns canned text instead of calling Textract."""

    def __init__(self, text: str = ""):
        self.text = text
        self.calls: List[bytes] = []

    async def extract_text(self, data: bytes) -> str:
        self.calls.append(data)
        return self.text


class FakeImageComparisonService:
    """Reports every comparison as similar and records what it was given."""

    def __init__(self):
        self.calls = []

    async def load_images(self, urls: Sequence[str]) -> List[bytes]:
        return [url.encode() for url in urls]

    async def compare(self, uploaded: Sequence[bytes], stored: Sequence[bytes]) -> ImageComparison:
        self.calls.append((list(uploaded), list(stored)))
        return ImageComparison(
            is_similar=True,
            confidence=0.9,
            reasoning="Same layout and branding",
            details="Identical hero image",
        )


@pytest.fixture
def fake_ocr() -> FakeOCRService:
    return FakeOCRService()


@pytest.fixture
def fake_images() -> FakeImageComparisonService:
    return FakeImageComparisonService()


@pytest.fixture
def client(tmp_path, monkeypatch, fake_ocr, fake_images):
    """API client backed by a fresh SQLite database."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'campaigns.db'}")
    monkeypatch.setenv("JSON_LOGS", "false")
    get_settings.cache_clear()

    from campaign_detector.api.deps import get_image_comparison_service, get_ocr_service
    from campaign_detector.main import app

    app.dependency_overrides[get_ocr_service] = lambda: fake_ocr
    app.dependency_overrides[get_image_comparison_service] = lambda: fake_images
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        get_settings.cache_clear()


@pytest.fixture
def campaign_payload() -> dict:
    return {
        "company_name": "Acme Outdoors",
        "campaign": "Summer Sale",
        "channel": "email",
        "sent_at": "2024-06-01T09:00:00+00:00",
        "body": "Summer sale: 50% off all premium tents this weekend only.",
    }
