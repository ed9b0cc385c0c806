"""
Slide synchronization pipeline.

Contains interval planning, frame and page extraction, payload assembly,
temporal correction and the service that ties them together.
"""

from .correction import TemporalCorrector, resolve_seconds
from .errors import (
    DocumentDecodeError,
    FrameExtractionError,
    InvalidDurationError,
    MalformedEventError,
    ModelBoundaryError,
    ModelResponseError,
    PayloadTooLargeError,
    RateLimitExceeded,
    RequestRejectedError,
    SlideSyncError,
    UnsupportedContentPartError,
    explain_failure,
)
from .frames import ExtractionState, FrameSource, VideoFrameExtractor
from .models import (
    ContentPart,
    CorrectedSyncEvent,
    FrameExtraction,
    FramePart,
    MediaPart,
    PagePart,
    ProgressEvent,
    SyncEvent,
    TextPart,
    format_timestamp,
    parse_timestamp,
)
from .pages import DocumentPageExtractor
from .payload import AssembledPayload, PayloadAssembler, guess_video_mime_type
from .planning import plan_sampling_interval
from .synchronizer import MediaFile, SizePolicy, SlideSynchronizer, SyncModelClient, SyncResult

__all__ = [
    "AssembledPayload",
    "ContentPart",
    "CorrectedSyncEvent",
    "DocumentDecodeError",
    "DocumentPageExtractor",
    "ExtractionState",
    "FrameExtraction",
    "FrameExtractionError",
    "FramePart",
    "FrameSource",
    "InvalidDurationError",
    "MalformedEventError",
    "MediaFile",
    "MediaPart",
    "ModelBoundaryError",
    "ModelResponseError",
    "PagePart",
    "PayloadAssembler",
    "PayloadTooLargeError",
    "ProgressEvent",
    "RateLimitExceeded",
    "RequestRejectedError",
    "SizePolicy",
    "SlideSyncError",
    "SlideSynchronizer",
    "SyncEvent",
    "SyncModelClient",
    "SyncResult",
    "TemporalCorrector",
    "TextPart",
    "UnsupportedContentPartError",
    "VideoFrameExtractor",
    "explain_failure",
    "format_timestamp",
    "guess_video_mime_type",
    "parse_timestamp",
    "plan_sampling_interval",
    "resolve_seconds",
]
