"""
活动数据模型 - 上传、确认、新增、列表接口的请求与响应
"""
from datetime import datetime
from typing import List, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from campaign_detector.db.models import Campaign


class CampaignOut(BaseModel):
    """Stored campaign as returned by the API."""
    id: int
    company_name: str
    campaign: str
    channel: str
    sent_at: datetime
    body: str
    occurrences: int
    image_urls: Optional[List[str]] = None

    @classmethod
    def from_model(cls, campaign: Campaign) -> "CampaignOut":
        return cls(
            id=campaign.id,
            company_name=campaign.company_name,
            campaign=campaign.campaign,
            channel=campaign.channel,
            sent_at=campaign.sent_at,
            body=campaign.body,
            occurrences=campaign.occurrences,
            image_urls=campaign.image_urls,
        )


class CampaignMatch(CampaignOut):
    """相似度搜索结果"""
    similarity: float = Field(ge=0.0, le=1.0)

    @classmethod
    def from_search(cls, campaign: Campaign, similarity: float) -> "CampaignMatch":
        data = CampaignOut.from_model(campaign).model_dump()
        return cls(**data, similarity=min(1.0, max(0.0, similarity)))


class ImageComparisonResult(BaseModel):
    """图像对比结果（针对某个匹配的活动）"""
    model_config = ConfigDict(populate_by_name=True)

    match_id: int = Field(alias="matchId")
    is_similar: bool = Field(alias="isSimilar")
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    details: str


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    matches: List[CampaignMatch]
    image_comparisons: Optional[List[ImageComparisonResult]] = Field(default=None, alias="imageComparisons")


class ConfirmSelectionRequest(BaseModel):
    id: int = Field(..., gt=0, strict=True, description="ID of the matched campaign")


class ConfirmSelectionResponse(BaseModel):
    success: bool = True
    occurrences: int


class InsertCampaignRequest(BaseModel):
    company_name: str = Field(..., min_length=1, description="Company name is required")
    campaign: str = Field(..., min_length=1, description="Campaign is required")
    channel: str = Field(..., min_length=1, description="Channel is required")
    sent_at: Optional[AwareDatetime] = Field(default=None, description="ISO 8601 datetime with offset")
    body: str = Field(..., min_length=1, description="Body text is required")
    image_urls: Optional[List[str]] = Field(default=None, description="Base64 data URLs or image URLs")


class InsertCampaignResponse(BaseModel):
    success: bool = True
    id: int


class CampaignListResponse(BaseModel):
    data: List[CampaignOut]
    count: int
    limit: int
    offset: int
