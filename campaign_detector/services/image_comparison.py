"""Gemini-backed visual comparison between an uploaded campaign and stored ones."""
from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import google.generativeai as genai
import httpx
from google.api_core import exceptions as google_exceptions
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from campaign_detector.core.errors import (
    BaseApplicationError,
    ImageComparisonError,
    RateLimitExceededError,
    ServiceUnavailableError,
)
from campaign_detector.core.logging import LogEvent
from campaign_detector.services.base_service import BaseService, singleton

STABLE_MODEL = "gemini-1.5-flash"
EXPERIMENTAL_MODEL = "gemini-2.0-flash-exp"

RATE_LIMIT_HINT = "Check your quota at https://ai.dev/usage?tab=rate-limit"

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")
_CONFIDENCE = re.compile(r"confidence[:\s]+([0-9]*\.?[0-9]+)", re.IGNORECASE)
_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[\w.-]+)*;base64,(?P<data>.*)$", re.DOTALL)


@dataclass(slots=True)
class ImageComparison:
    """Verdict returned by the vision model."""

    is_similar: bool
    confidence: float
    reasoning: str
    details: str


def detect_mime_type(data: bytes) -> str:
    """Guess the MIME type from magic bytes, defaulting to JPEG."""
    if data[:2] == b"\xff\xd8":
        return "image/jpeg"
    if data[:2] == b"\x89P":
        return "image/png"
    if data[:2] == b"GI":
        return "image/gif"
    if data[:2] == b"%P":
        return "application/pdf"
    return "image/jpeg"


def build_prompt(uploaded_count: int, stored_count: int) -> str:
    """Instructions for the model, including how the images pair up."""
    pairing = ""
    sequential = uploaded_count == stored_count and uploaded_count > 1
    if sequential:
        lines = [
            f"- Uploaded image {i + 1} should be compared with Database image {i + 1}"
            for i in range(uploaded_count)
        ]
        pairing = (
            "\n\nIMPORTANT: These are sequential images. Compare them in pairs by position:\n"
            + "\n".join(lines)
            + "\nDo NOT compare uploaded images to each other. Only compare each uploaded image "
            "to its corresponding database image by position."
        )
    elif uploaded_count > 1 or stored_count > 1:
        pairing = (
            f"\n\nNote: There are {uploaded_count} uploaded image(s) and {stored_count} database image(s). "
            "Compare the uploaded images as a set against the database images as a set."
        )

    steps = [
        "1. Visual similarity (layout, design, colors, fonts)",
        "2. Content similarity (text, messaging, branding)",
        "3. Overall campaign match likelihood",
    ]
    if sequential:
        steps.append(
            "4. Compare images in sequential pairs (uploaded image 1 vs database image 1, "
            "uploaded image 2 vs database image 2, etc.)"
        )

    return (
        "You are an expert at comparing marketing campaign images. Compare the uploaded campaign "
        "images with the database campaign images.\n\n"
        f"Uploaded images: {uploaded_count} image(s) (shown first, in order)\n"
        f"Database images: {stored_count} image(s) (shown after uploaded images, in order)"
        f"{pairing}\n\n"
        "Analyze:\n" + "\n".join(steps) + "\n\n"
        "Respond with a JSON object in this exact format:\n"
        "{\n"
        '  "isSimilar": boolean,\n'
        '  "confidence": number (0-1, where 1 is very confident they are the same campaign),\n'
        '  "reasoning": "brief explanation of your assessment",\n'
        '  "details": "detailed analysis of similarities and differences"\n'
        "}\n\n"
        "Be strict: only mark as similar if the images appear to be from the same campaign "
        "or very similar campaigns."
    )


def _clamp(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = default
    return min(1.0, max(0.0, number))


def _from_payload(payload: Dict[str, Any]) -> ImageComparison:
    is_similar = payload.get("isSimilar", payload.get("is_similar", False))
    if isinstance(is_similar, str):
        is_similar = is_similar.strip().lower() == "true"
    return ImageComparison(
        is_similar=bool(is_similar),
        confidence=_clamp(payload.get("confidence"), 0.0),
        reasoning=str(payload.get("reasoning") or ""),
        details=str(payload.get("details") or ""),
    )


def parse_comparison_response(text: str) -> ImageComparison:
    """
    Turn the model's reply into an ``ImageComparison``.

    Tries the first ``{...}`` block, then the whole reply, as JSON. Replies
    without usable JSON fall back to keyword heuristics.
    """
    text = text or ""
    candidates = []
    block = _JSON_BLOCK.search(text)
    if block:
        candidates.append(block.group(0))
    candidates.append(text)

    for raw in candidates:
        try:
            payload = json.loads(raw)
        except ValueError:
            continue
        if isinstance(payload, dict):
            return _from_payload(payload)

    lowered = text.lower()
    is_similar = any(word in lowered for word in ("similar", "match", "same"))
    found = _CONFIDENCE.search(text)
    confidence = found.group(1) if found else (0.7 if is_similar else 0.3)
    return ImageComparison(
        is_similar=is_similar,
        confidence=_clamp(confidence, 0.3),
        reasoning=text[:200],
        details=text,
    )


def decode_data_url(url: str) -> Optional[bytes]:
    """Bytes of a ``data:...;base64,`` URL, or None for any other URL."""
    match = _DATA_URL.match(url.strip())
    if not match:
        return None
    try:
        return base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError):
        return None


def _is_rate_limit(exc: Exception) -> bool:
    if isinstance(exc, google_exceptions.ResourceExhausted):
        return True
    message = str(exc).lower()
    return "429" in message or "quota" in message or "rate limit" in message


@singleton
class ImageComparisonService(BaseService):
    """Compares uploaded images against stored campaign images with Gemini."""

    def _initialize(self) -> None:
        if not self.settings.image_comparison_enabled:
            raise ServiceUnavailableError("Gemini", reason="Gemini API key is not configured")
        genai.configure(api_key=self.settings.google_gemini_api_key)
        self.model_name = EXPERIMENTAL_MODEL if self.settings.gemini_use_experimental else STABLE_MODEL
        self.model = genai.GenerativeModel(self.model_name)

    async def load_images(self, urls: Sequence[str]) -> List[bytes]:
        """Resolve stored image URLs (data URLs or http(s)) to bytes; bad entries are skipped."""
        images: List[bytes] = []
        remote = []
        for url in urls or []:
            decoded = decode_data_url(url)
            if decoded:
                images.append(decoded)
            elif url.startswith(("http://", "https://")):
                remote.append(url)
            else:
                self.logger.warning("Skipping unsupported image url", url_prefix=url[:32])

        if remote:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.settings.request_timeout)) as client:
                for url in remote:
                    try:
                        response = await client.get(url, follow_redirects=True)
                        response.raise_for_status()
                    except httpx.HTTPError as exc:
                        self.logger.warning("Failed to fetch stored image", url=url, error=str(exc))
                        continue
                    images.append(response.content)
        return images

    async def compare(self, uploaded: Sequence[bytes], stored: Sequence[bytes]) -> ImageComparison:
        if not uploaded or not stored:
            return ImageComparison(
                is_similar=False,
                confidence=0.0,
                reasoning="No images provided for comparison",
                details="At least one uploaded image and one database image is required",
            )

        self._ensure_initialized()
        self.logger.info(
            LogEvent.IMAGE_COMPARISON_STARTED,
            model=self.model_name,
            uploaded=len(uploaded),
            stored=len(stored),
        )

        # Uploaded images first, then stored ones, each side in order
        parts: List[Any] = [build_prompt(len(uploaded), len(stored))]
        parts.extend({"mime_type": detect_mime_type(data), "data": data} for data in uploaded)
        parts.extend({"mime_type": detect_mime_type(data), "data": data} for data in stored)

        try:
            text = await self._generate(parts)
        except BaseApplicationError:
            raise
        except Exception as exc:
            self.logger.error(LogEvent.IMAGE_COMPARISON_FAILED, error=str(exc))
            raise ImageComparisonError(str(exc), original_error=exc) from exc

        result = parse_comparison_response(text)
        self.logger.info(
            LogEvent.IMAGE_COMPARISON_COMPLETED,
            is_similar=result.is_similar,
            confidence=result.confidence,
        )
        return result

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_not_exception_type(RateLimitExceededError),
        reraise=True,
    )
    async def _generate(self, parts: List[Any]) -> str:
        try:
            response = await self.model.generate_content_async(parts)
        except Exception as exc:
            if _is_rate_limit(exc):
                self.logger.warning(LogEvent.IMAGE_COMPARISON_FAILED, reason="rate_limited", error=str(exc))
                raise RateLimitExceededError("Gemini", hint=RATE_LIMIT_HINT) from exc
            raise
        return response.text
