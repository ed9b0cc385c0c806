"""
Slide synchronization endpoint.

Users upload a lecture recording and its slide deck and receive the list of
slide changes, each tied to a video time and a PDF page:

    POST /api/v1/sync   (multipart: video, document)

The whole pipeline runs inside one request. Long videos are sampled into
frames and large decks rasterized into pages before the model is called.
"""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.sync.errors import (
    DocumentDecodeError,
    FrameExtractionError,
    InvalidDurationError,
    ModelBoundaryError,
    PayloadTooLargeError,
    RateLimitExceeded,
    RequestRejectedError,
    SlideSyncError,
    explain_failure,
)
from ...core.sync.synchronizer import MediaFile, SyncResult
from ..dependencies import AuthenticatedUser, SettingsDep, SynchronizerDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class SyncEventItem(BaseModel):
    """One slide change, using the camelCase names clients expect."""
    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(description="Corrected start time, MM:SS")
    seconds: float = Field(description="Corrected start time in seconds")
    pdf_page_number: int = Field(alias="pdfPageNumber", description="1-based page of the slide")
    slide_title: str = Field(alias="slideTitle", description="Title or short summary of the slide")
    reasoning: str = Field(description="Why the model matched this frame to this page")


class SyncResponse(BaseModel):
    """Response with the synchronized slide changes and run metadata."""
    events: list[SyncEventItem] = Field(description="Slide changes in chronological order")
    sampling_interval_seconds: int = Field(description="Frame sampling interval, 0 if sent inline")
    frame_count: int = Field(description="Frames sampled from the video")
    page_count: int = Field(description="Pages rendered from the PDF, 0 if sent inline")
    video_sampled: bool = Field(description="Whether the video was sampled into frames")
    document_rasterized: bool = Field(description="Whether the PDF was rendered into images")
    timing_corrected: bool = Field(description="Whether midpoint correction was applied")

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResponse":
        return cls(
            events=[SyncEventItem.model_validate(event.to_dict()) for event in result.events],
            sampling_interval_seconds=result.sampling_interval,
            frame_count=result.frame_count,
            page_count=result.page_count,
            video_sampled=result.video_sampled,
            document_rasterized=result.document_rasterized,
            timing_corrected=result.corrected,
        )


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_INPUT_ERRORS = (InvalidDurationError, FrameExtractionError, DocumentDecodeError)


def status_for_error(error: SlideSyncError) -> int:
    """HTTP status for a pipeline failure."""
    if isinstance(error, _INPUT_ERRORS):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(error, PayloadTooLargeError):
        return status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    if isinstance(error, RequestRejectedError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, RateLimitExceeded):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(error, ModelBoundaryError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _read_upload(upload: UploadFile, label: str, max_bytes: int) -> MediaFile:
    data = await upload.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"The uploaded {label} is empty.",
        )
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"The uploaded {label} exceeds the maximum size of {max_bytes // (1024 * 1024)}MB.",
        )
    return MediaFile(data=data, filename=upload.filename or "", content_type=upload.content_type)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=SyncResponse,
    status_code=status.HTTP_200_OK,
    summary="Synchronize a lecture video with its slides",
    description="Upload a lecture video and its PDF slide deck; returns when each slide appears.",
)
async def synchronize_slides(
    api_key: AuthenticatedUser,
    video: Annotated[UploadFile, File(description="Lecture video (MP4, MOV, WebM, ...)")],
    document: Annotated[UploadFile, File(description="Slide deck as PDF")],
    synchronizer: SynchronizerDep,
    settings: SettingsDep,
) -> SyncResponse:
    video_file = await _read_upload(video, "video", settings.max_upload_size_bytes)
    document_file = await _read_upload(document, "document", settings.max_upload_size_bytes)

    logger.info(
        "Received sync request",
        extra={
            "video_filename": video_file.filename,
            "video_bytes": video_file.size_bytes,
            "document_filename": document_file.filename,
            "document_bytes": document_file.size_bytes,
        }
    )

    try:
        result = await asyncio.wait_for(
            synchronizer.synchronize(video_file, document_file),
            timeout=settings.sync_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error("Sync timed out", extra={"timeout": settings.sync_timeout_seconds})
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Synchronization took too long. Try a shorter video.",
        )
    except SlideSyncError as e:
        http_status = status_for_error(e)
        logger.warning(
            "Sync failed",
            extra={"stage": e.stage, "error": e.describe(), "status": http_status},
        )
        raise HTTPException(status_code=http_status, detail=explain_failure(e)) from e

    return SyncResponse.from_result(result)
