"""
FastAPI dependency injection.

Dependencies provide the synchronizer, its collaborators and configuration
to route handlers. Routes never build their own clients, so tests can swap
any of them through `app.dependency_overrides`.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.sync.frames import VideoFrameExtractor
from ..core.sync.pages import DocumentPageExtractor
from ..core.sync.synchronizer import FrameSourceFactory, SlideSynchronizer, SyncModelClient
from ..infrastructure.anthropic.client import create_sync_model_client
from ..infrastructure.video.processor import create_frame_source_factory

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8]}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_sync_model_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> SyncModelClient:
    """Provide the multimodal model client (Claude, or the mock in mock mode)."""
    try:
        return create_sync_model_client(settings)
    except ValueError as e:
        logger.error("Model client is not configured", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Model client is not configured",
        ) from e


def get_frame_source_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> FrameSourceFactory:
    return create_frame_source_factory(
        mock_mode=settings.video_mock_mode,
        ffmpeg_path=settings.ffmpeg_path,
        ffprobe_path=settings.ffprobe_path,
    )


def get_synchronizer(
    settings: Annotated[Settings, Depends(get_settings)],
    model_client: Annotated[SyncModelClient, Depends(get_sync_model_client)],
    frame_source_factory: Annotated[FrameSourceFactory, Depends(get_frame_source_factory)],
) -> SlideSynchronizer:
    """
    Provide a SlideSynchronizer configured from settings.

    The synchronizer holds configuration only, so a new instance per
    request is cheap and never shares run state.
    """
    synchronizer = SlideSynchronizer(
        model_client=model_client,
        frame_source_factory=frame_source_factory,
        size_policy=settings.size_policy,
        frame_extractor=VideoFrameExtractor(
            target_frame_count=settings.target_frame_count,
            max_dimension=settings.frame_max_dimension,
            jpeg_quality=settings.frame_jpeg_quality,
        ),
        page_extractor=DocumentPageExtractor(
            max_dimension=settings.page_max_dimension,
            base_scale=settings.page_base_scale,
            jpeg_quality=settings.page_jpeg_quality,
        ),
        reasoning_language=settings.reasoning_language,
    )
    logger.debug("Created SlideSynchronizer instance")
    return synchronizer


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
SynchronizerDep = Annotated[SlideSynchronizer, Depends(get_synchronizer)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
