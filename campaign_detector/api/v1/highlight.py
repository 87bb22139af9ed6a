"""Stateless text highlighting API."""
from fastapi import APIRouter, Depends

from campaign_detector.api.deps import get_alignment_service
from campaign_detector.models.alignment import HighlightRequest, HighlightResponse
from campaign_detector.services.text_alignment import TextAlignmentService

router = APIRouter(tags=["Highlight"])


@router.post("/highlight", response_model=HighlightResponse, summary="Split candidate text into matched segments")
def highlight(
    payload: HighlightRequest,
    alignment: TextAlignmentService = Depends(get_alignment_service),
) -> HighlightResponse:
    # 同步路由，在线程池中执行
    result = alignment.align(payload.reference, payload.candidate, mode=payload.mode)
    return HighlightResponse.from_result(result)
