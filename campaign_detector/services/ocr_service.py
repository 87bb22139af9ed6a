"""AWS Textract adapter for extracting text from uploaded campaign documents."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from campaign_detector.core.errors import OCRError, ServiceUnavailableError
from campaign_detector.core.logging import LogEvent
from campaign_detector.services.base_service import BaseService, singleton


def lines_from_blocks(blocks: Optional[List[Dict[str, Any]]]) -> str:
    """Join the text of Textract ``LINE`` blocks, one per line."""
    lines = []
    for block in blocks or []:
        if block.get("BlockType") != "LINE":
            continue
        line = (block.get("Text") or "").strip()
        if line:
            lines.append(line)
    return "\n".join(lines)


@singleton
class OCRService(BaseService):
    """Runs ``DetectDocumentText`` on raw document bytes."""

    def _initialize(self) -> None:
        if not self.settings.ocr_enabled:
            raise ServiceUnavailableError(
                "Textract",
                reason="AWS_REGION is not set. Update your environment variables before using Textract.",
            )
        self.client = boto3.client("textract", **self.settings.get_aws_client_params())

    async def extract_text(self, data: bytes) -> str:
        """Return the document's text lines joined by newlines ('' when none)."""
        self._ensure_initialized()
        self.logger.info(LogEvent.OCR_STARTED, size_bytes=len(data))
        start = time.time()

        try:
            response = await asyncio.to_thread(
                self.client.detect_document_text,
                Document={"Bytes": data},
            )
        except (BotoCoreError, ClientError) as exc:
            self.logger.error(LogEvent.OCR_FAILED, error=str(exc))
            raise OCRError(str(exc), original_error=exc) from exc

        text = lines_from_blocks(response.get("Blocks"))
        self.logger.info(
            LogEvent.OCR_COMPLETED,
            chars=len(text),
            lines=text.count("\n") + 1 if text else 0,
            duration_ms=round((time.time() - start) * 1000, 2),
        )
        return text
