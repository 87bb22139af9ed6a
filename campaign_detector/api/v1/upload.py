"""Upload-and-match and match confirmation APIs."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from campaign_detector.api.deps import get_campaign_service
from campaign_detector.core.config import get_settings
from campaign_detector.core.errors import InvalidRequestError, PayloadTooLargeError
from campaign_detector.models.campaign import (
    ConfirmSelectionRequest,
    ConfirmSelectionResponse,
    UploadResponse,
)
from campaign_detector.services.campaign_service import CampaignService

router = APIRouter(tags=["Upload"])

CHUNK_SIZE = 1024 * 1024


async def _read_upload(upload: UploadFile, limit: int) -> bytes:
    chunks = []
    bytes_read = 0
    while True:
        chunk = await upload.read(CHUNK_SIZE)
        if not chunk:
            break
        bytes_read += len(chunk)
        if bytes_read > limit:
            raise PayloadTooLargeError(limit)
        chunks.append(chunk)
    return b"".join(chunks)


@router.post(
    "/upload",
    response_model=UploadResponse,
    response_model_exclude_none=True,
    summary="Extract text from a document and find similar campaigns",
)
async def upload_document(
    file: Optional[UploadFile] = File(None, description="PDF or image of the campaign"),
    compare_images: bool = Form(False, description="Also compare visuals of the top matches"),
    service: CampaignService = Depends(get_campaign_service),
) -> UploadResponse:
    if file is None:
        raise InvalidRequestError("A file is required.")

    data = await _read_upload(file, get_settings().max_upload_bytes)
    if not data:
        raise InvalidRequestError("The uploaded file is empty.")

    return await service.process_upload(data, filename=file.filename, compare_images=compare_images)


@router.post("/confirm", response_model=ConfirmSelectionResponse, summary="Confirm a matched campaign")
async def confirm_selection(
    payload: ConfirmSelectionRequest,
    service: CampaignService = Depends(get_campaign_service),
) -> ConfirmSelectionResponse:
    occurrences = await service.confirm_match(payload.id)
    return ConfirmSelectionResponse(success=True, occurrences=occurrences)
