"""Highlight request/response models."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from campaign_detector.services.text_alignment import AlignmentMode, AlignmentResult, Segment


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SegmentModel(CamelModel):
    """Span of the candidate text; matched spans are rendered highlighted."""
    text: str
    is_match: bool

    @classmethod
    def from_segment(cls, segment: Segment) -> "SegmentModel":
        return cls(text=segment.text, is_match=segment.is_match)


class HighlightRequest(CamelModel):
    reference: str = Field(default="", description="Text compared against, e.g. OCR output")
    candidate: str = Field(default="", description="Text to split into highlighted segments")
    mode: Optional[AlignmentMode] = Field(default=None, description="exact or words; server default when omitted")


class CampaignHighlightRequest(CamelModel):
    reference: str = Field(default="", description="Text compared against the stored campaign body")
    mode: Optional[AlignmentMode] = None


class HighlightResponse(CamelModel):
    segments: List[SegmentModel]
    mode: AlignmentMode
    matched_chars: int
    total_chars: int
    coverage: float
    truncated: bool = False

    @classmethod
    def from_result(cls, result: AlignmentResult) -> "HighlightResponse":
        return cls(
            segments=[SegmentModel.from_segment(segment) for segment in result.segments],
            mode=result.mode,
            matched_chars=result.matched_chars,
            total_chars=result.total_chars,
            coverage=round(result.coverage, 4),
            truncated=result.truncated,
        )
