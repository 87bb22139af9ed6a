"""Campaign review workflow: upload, match, confirm, insert, list and highlight."""
from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

from campaign_detector.core.errors import InvalidRequestError, ResourceNotFoundError
from campaign_detector.core.logging import LogEvent
from campaign_detector.db.models import Campaign, utcnow
from campaign_detector.models.campaign import (
    CampaignMatch,
    ImageComparisonResult,
    InsertCampaignRequest,
    UploadResponse,
)
from campaign_detector.repositories.campaigns import CampaignRepository, SortOrder
from campaign_detector.services.base_service import BaseService
from campaign_detector.services.image_comparison import ImageComparisonService
from campaign_detector.services.ocr_service import OCRService
from campaign_detector.services.text_alignment import AlignmentMode, AlignmentResult, TextAlignmentService


class CampaignService(BaseService):
    """Coordinates OCR, similarity search, image comparison and storage."""

    def __init__(
        self,
        repository: Optional[CampaignRepository] = None,
        ocr: Optional[OCRService] = None,
        image_comparison: Optional[ImageComparisonService] = None,
        alignment: Optional[TextAlignmentService] = None,
    ):
        super().__init__()
        self.repository = repository or CampaignRepository()
        self._ocr = ocr
        self._image_comparison = image_comparison
        self.alignment = alignment or TextAlignmentService()

    @property
    def ocr(self) -> OCRService:
        if self._ocr is None:
            self._ocr = OCRService()
        return self._ocr

    @property
    def image_comparison(self) -> ImageComparisonService:
        if self._image_comparison is None:
            self._image_comparison = ImageComparisonService()
        return self._image_comparison

    async def process_upload(
        self,
        data: bytes,
        filename: Optional[str] = None,
        compare_images: bool = False,
    ) -> UploadResponse:
        """
        Extract text from an uploaded document and find similar campaigns.

        Search is skipped when OCR yields only whitespace. With
        ``compare_images`` the upload is also compared visually against the
        top matches that carry stored images.
        """
        if not data:
            raise InvalidRequestError("The uploaded file is empty.")

        self.logger.info(LogEvent.UPLOAD_RECEIVED, filename=filename, size_bytes=len(data))
        text = await self.ocr.extract_text(data)

        matches: List[CampaignMatch] = []
        if text.strip():
            found = await self.repository.search_similar(text, k=self.settings.search_top_k)
            matches = [CampaignMatch.from_search(campaign, score) for campaign, score in found]

        comparisons = None
        if compare_images and matches:
            comparisons = await self._compare_top_matches(data, matches)

        return UploadResponse(text=text, matches=matches, image_comparisons=comparisons)

    async def _compare_top_matches(
        self,
        data: bytes,
        matches: List[CampaignMatch],
    ) -> List[ImageComparisonResult]:
        results = []
        candidates = [match for match in matches if match.image_urls][: self.settings.image_comparison_top_n]
        for match in candidates:
            stored = await self.image_comparison.load_images(match.image_urls or [])
            verdict = await self.image_comparison.compare([data], stored)
            results.append(
                ImageComparisonResult(
                    match_id=match.id,
                    is_similar=verdict.is_similar,
                    confidence=verdict.confidence,
                    reasoning=verdict.reasoning,
                    details=verdict.details,
                )
            )
        return results

    async def confirm_match(self, campaign_id: int) -> int:
        """Record another sighting of an existing campaign; returns the new count."""
        occurrences = await self.repository.increment_occurrences(campaign_id)
        if occurrences is None:
            raise ResourceNotFoundError("Campaign", str(campaign_id))
        self.logger.info(LogEvent.CAMPAIGN_CONFIRMED, campaign_id=campaign_id, occurrences=occurrences)
        return occurrences

    async def insert_campaign(self, payload: InsertCampaignRequest) -> Campaign:
        campaign = Campaign(
            company_name=payload.company_name,
            campaign=payload.campaign,
            channel=payload.channel,
            sent_at=payload.sent_at or utcnow(),
            body=payload.body,
            occurrences=1,
            image_urls=payload.image_urls,
        )
        campaign = await self.repository.create(campaign)
        self.logger.info(LogEvent.CAMPAIGN_INSERTED, campaign_id=campaign.id, company=campaign.company_name)
        return campaign

    async def list_campaigns(
        self,
        search: str = "",
        sort_by: str = "sent_at",
        sort_order: SortOrder = SortOrder.DESC,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[Campaign], int]:
        return await self.repository.list_campaigns(
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )

    def highlight(
        self,
        reference: str,
        candidate: str,
        mode: Optional[AlignmentMode] = None,
    ) -> AlignmentResult:
        return self.alignment.align(reference, candidate, mode=mode)

    async def highlight_campaign(
        self,
        campaign_id: int,
        reference: str,
        mode: Optional[AlignmentMode] = None,
    ) -> AlignmentResult:
        """Align a stored campaign's body against ``reference``.

        The diff is CPU bound, so it runs in a worker thread.
        """
        campaign = await self.repository.get_by_id(campaign_id)
        if campaign is None:
            raise ResourceNotFoundError("Campaign", str(campaign_id))
        return await asyncio.to_thread(self.highlight, reference, campaign.body, mode)
