"""Tests for Gemini image comparison: prompt, response parsing, retries."""

import asyncio
import base64

import pytest
from tenacity import wait_none

from campaign_detector.core.errors import (
    ImageComparisonError,
    RateLimitExceededError,
    ServiceUnavailableError,
)
from campaign_detector.services.image_comparison import (
    ImageComparisonService,
    build_prompt,
    decode_data_url,
    detect_mime_type,
    parse_comparison_response,
)

PNG = b"\x89PNG\r\n\x1a\n0000"
JPEG = b"\xff\xd8\xff\xe00000"


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Raises the queued errors in order, then answers with ``text``."""

    def __init__(self, text="", errors=None):
        self.text = text
        self.errors = list(errors or [])
        self.calls = []

    async def generate_content_async(self, parts):
        self.calls.append(parts)
        if self.errors:
            raise self.errors.pop(0)
        return FakeResponse(self.text)


@pytest.fixture
def image_service(monkeypatch):
    ImageComparisonService.reset_instance()
    service = ImageComparisonService()
    monkeypatch.setattr(ImageComparisonService._generate.retry, "wait", wait_none())
    yield service
    ImageComparisonService.reset_instance()


def with_model(service, model):
    service.model = model
    service.model_name = "fake-model"
    service._initialized = True
    return service


class TestHelpers:

    @pytest.mark.parametrize("data,expected", [
        (JPEG, "image/jpeg"),
        (PNG, "image/png"),
        (b"GIF89a", "image/gif"),
        (b"%PDF-1.7", "application/pdf"),
        (b"unknown", "image/jpeg"),
    ])
    def test_detect_mime_type(self, data, expected):
        assert detect_mime_type(data) == expected

    def test_prompt_pairs_sequential_images(self):
        prompt = build_prompt(2, 2)
        assert "Uploaded image 1 should be compared with Database image 1" in prompt
        assert "Uploaded image 2 should be compared with Database image 2" in prompt
        assert '"isSimilar": boolean' in prompt

    def test_prompt_compares_sets_when_counts_differ(self):
        prompt = build_prompt(1, 3)
        assert "as a set" in prompt
        assert "should be compared with" not in prompt

    def test_prompt_single_pair(self):
        prompt = build_prompt(1, 1)
        assert "as a set" not in prompt
        assert "sequential" not in prompt

    def test_decode_data_url(self):
        url = "data:image/png;base64," + base64.b64encode(PNG).decode()
        assert decode_data_url(url) == PNG

    def test_decode_other_urls(self):
        assert decode_data_url("https://cdn.example.com/a.png") is None


class TestParseComparisonResponse:

    def test_json_inside_prose(self):
        text = 'Here you go:\n```json\n{"isSimilar": true, "confidence": 0.92, "reasoning": "Same hero", "details": "Logo matches"}\n```'
        result = parse_comparison_response(text)
        assert result.is_similar is True
        assert result.confidence == 0.92
        assert result.reasoning == "Same hero"
        assert result.details == "Logo matches"

    def test_confidence_is_clamped(self):
        result = parse_comparison_response('{"isSimilar": false, "confidence": 3}')
        assert result.is_similar is False
        assert result.confidence == 1.0

    def test_snake_case_keys(self):
        result = parse_comparison_response('{"is_similar": "true", "confidence": "0.4"}')
        assert result.is_similar is True
        assert result.confidence == 0.4

    def test_heuristic_fallback(self):
        result = parse_comparison_response("These look like the same campaign. Confidence: 0.85")
        assert result.is_similar is True
        assert result.confidence == 0.85
        assert result.details.startswith("These look like")

    def test_heuristic_defaults(self):
        assert parse_comparison_response("Completely different designs").confidence == 0.3
        assert parse_comparison_response("They match closely").confidence == 0.7


class TestImageComparisonService:

    def test_no_images_skips_model(self, image_service):
        result = asyncio.run(image_service.compare([], [PNG]))
        assert result.is_similar is False
        assert result.confidence == 0.0
        assert result.reasoning == "No images provided for comparison"

    def test_unconfigured(self, image_service, monkeypatch):
        monkeypatch.setattr(image_service.settings, "google_gemini_api_key", None)
        with pytest.raises(ServiceUnavailableError):
            asyncio.run(image_service.compare([PNG], [JPEG]))

    def test_compare(self, image_service):
        model = FakeModel(text='{"isSimilar": true, "confidence": 0.9, "reasoning": "r", "details": "d"}')
        with_model(image_service, model)

        result = asyncio.run(image_service.compare([PNG], [JPEG, PNG]))

        assert result.is_similar is True
        parts = model.calls[0]
        assert isinstance(parts[0], str)
        assert parts[1:] == [
            {"mime_type": "image/png", "data": PNG},
            {"mime_type": "image/jpeg", "data": JPEG},
            {"mime_type": "image/png", "data": PNG},
        ]

    def test_rate_limit_is_not_retried(self, image_service):
        model = FakeModel(errors=[RuntimeError("429 Resource has been exhausted (e.g. check quota).")])
        with_model(image_service, model)

        with pytest.raises(RateLimitExceededError) as exc_info:
            asyncio.run(image_service.compare([PNG], [PNG]))

        assert len(model.calls) == 1
        assert exc_info.value.status_code == 429
        assert "ai.dev/usage" in exc_info.value.details["hint"]

    def test_transient_errors_are_retried(self, image_service):
        model = FakeModel(
            text='{"isSimilar": false, "confidence": 0.1}',
            errors=[RuntimeError("connection reset")],
        )
        with_model(image_service, model)

        result = asyncio.run(image_service.compare([PNG], [PNG]))

        assert len(model.calls) == 2
        assert result.is_similar is False

    def test_persistent_errors_are_wrapped(self, image_service):
        model = FakeModel(errors=[RuntimeError("boom")] * 3)
        with_model(image_service, model)

        with pytest.raises(ImageComparisonError) as exc_info:
            asyncio.run(image_service.compare([PNG], [PNG]))

        assert len(model.calls) == 3
        assert exc_info.value.status_code == 502

    def test_load_data_urls(self, image_service):
        urls = [
            "data:image/png;base64," + base64.b64encode(PNG).decode(),
            "ftp://example.com/a.png",
        ]
        assert asyncio.run(image_service.load_images(urls)) == [PNG]
