"""Campaign library APIs: listing, insertion and per-campaign highlighting."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query, status

from campaign_detector.api.deps import get_campaign_service
from campaign_detector.models.alignment import CampaignHighlightRequest, HighlightResponse
from campaign_detector.models.campaign import (
    CampaignListResponse,
    CampaignOut,
    InsertCampaignRequest,
    InsertCampaignResponse,
)
from campaign_detector.repositories.campaigns import SortOrder
from campaign_detector.services.campaign_service import CampaignService

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


@router.get("", response_model=CampaignListResponse, summary="List stored campaigns")
async def list_campaigns(
    search: str = Query("", description="Substring matched against company, campaign, channel and body"),
    sort_by: str = Query("sent_at", alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignListResponse:
    campaigns, total = await service.list_campaigns(
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return CampaignListResponse(
        data=[CampaignOut.from_model(campaign) for campaign in campaigns],
        count=total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "",
    response_model=InsertCampaignResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store a new campaign",
)
async def insert_campaign(
    payload: InsertCampaignRequest,
    service: CampaignService = Depends(get_campaign_service),
) -> InsertCampaignResponse:
    campaign = await service.insert_campaign(payload)
    return InsertCampaignResponse(success=True, id=campaign.id)


@router.post(
    "/{campaign_id}/highlight",
    response_model=HighlightResponse,
    summary="Highlight a stored campaign body against reference text",
)
async def highlight_campaign(
    payload: CampaignHighlightRequest,
    campaign_id: int = Path(..., gt=0),
    service: CampaignService = Depends(get_campaign_service),
) -> HighlightResponse:
    result = await service.highlight_campaign(campaign_id, payload.reference, mode=payload.mode)
    return HighlightResponse.from_result(result)
