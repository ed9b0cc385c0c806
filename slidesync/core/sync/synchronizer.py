"""
Slide synchronization service.

Orchestrates one run of the pipeline:

    files -> size policy -> frame/page extraction or inline submission
          -> payload assembly -> model call -> event parsing -> correction

It knows nothing about HTTP or a particular model vendor. Decoding and
inference are reached through the FrameSourceFactory and SyncModelClient
protocols so tests can supply fakes.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence

from .correction import TemporalCorrector
from .errors import ModelBoundaryError, ModelResponseError
from .events import parse_sync_events
from .frames import FrameSource, VideoFrameExtractor
from .models import (
    ContentPart,
    CorrectedSyncEvent,
    FrameExtraction,
    MediaPart,
    PagePart,
    ProgressCallback,
    ProgressEvent,
)
from .pages import DocumentPageExtractor
from .payload import (
    PDF_MIME_TYPE,
    AssembledPayload,
    PayloadAssembler,
    StreamItem,
    guess_video_mime_type,
)
from .progress import report_progress
from .prompts import build_sync_instruction

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class SyncModelClient(Protocol):
    """
    Interface for the multimodal model that matches frames to pages.

    The call is atomic from the pipeline's point of view: it either returns
    the full event list or raises a ModelBoundaryError.
    """

    @property
    def accepts_inline_video(self) -> bool:
        """Whether whole video files can be submitted without sampling."""
        ...

    async def generate_sync_events(self, parts: Sequence[ContentPart]) -> list[Any]:
        """Send the ordered parts and return the raw event items."""
        ...


# (video bytes, filename) -> unopened frame source
FrameSourceFactory = Callable[[bytes, str], FrameSource]


# ---------------------------------------------------------------------------
# Inputs and results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MediaFile:
    """An uploaded file: raw bytes plus what the client told us about it."""
    data: bytes
    filename: str = ""
    content_type: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class SizePolicy:
    """
    Decides between inline submission and sampling/rasterization.

    Files strictly larger than their limit are routed through the
    extractors.
    """
    video_direct_limit_bytes: int = 20 * MEGABYTE
    document_direct_limit_bytes: int = 10 * MEGABYTE

    @classmethod
    def from_megabytes(cls, video_mb: float, document_mb: float) -> "SizePolicy":
        return cls(
            video_direct_limit_bytes=int(video_mb * MEGABYTE),
            document_direct_limit_bytes=int(document_mb * MEGABYTE),
        )

    def should_sample_video(self, size_bytes: int) -> bool:
        return size_bytes > self.video_direct_limit_bytes

    def should_rasterize_document(self, size_bytes: int) -> bool:
        return size_bytes > self.document_direct_limit_bytes


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one synchronization run."""
    events: list[CorrectedSyncEvent]
    sampling_interval: int
    frame_count: int
    page_count: int
    video_sampled: bool
    document_rasterized: bool

    @property
    def corrected(self) -> bool:
        return self.sampling_interval > 0


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class SlideSynchronizer:
    """
    Runs the full sampling, matching and correction pipeline.

    This is a service, not a data container. Every call allocates its own
    frame source and renderer and releases them before returning.
    """

    def __init__(
        self,
        model_client: SyncModelClient,
        frame_source_factory: FrameSourceFactory,
        size_policy: Optional[SizePolicy] = None,
        frame_extractor: Optional[VideoFrameExtractor] = None,
        page_extractor: Optional[DocumentPageExtractor] = None,
        assembler: Optional[PayloadAssembler] = None,
        reasoning_language: str = "English",
    ) -> None:
        self._model_client = model_client
        self._frame_source_factory = frame_source_factory
        self._size_policy = size_policy or SizePolicy()
        self._frame_extractor = frame_extractor or VideoFrameExtractor()
        self._page_extractor = page_extractor or DocumentPageExtractor()
        self._assembler = assembler or PayloadAssembler()
        self._reasoning_language = reasoning_language

    async def synchronize(
        self,
        video: MediaFile,
        document: MediaFile,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SyncResult:
        """
        Align `video` with the slide deck in `document`.

        Extraction failures abort before anything is sent to the model,
        so a partial payload is never submitted.
        """
        sample_video = (
            self._size_policy.should_sample_video(video.size_bytes)
            or not self._model_client.accepts_inline_video
        )
        rasterize_document = self._size_policy.should_rasterize_document(document.size_bytes)

        logger.info(
            "Starting synchronization",
            extra={
                "video_bytes": video.size_bytes,
                "document_bytes": document.size_bytes,
                "sample_video": sample_video,
                "rasterize_document": rasterize_document,
            },
        )

        # set when the awaiting task is cancelled, so worker threads stop early
        cancelled = threading.Event()

        # 1. video stream
        video_stream: Sequence[StreamItem]
        interval = 0
        frame_count = 0
        if sample_video:
            extraction = await _run_cancellable(
                self._sample_video, video, on_progress, cancel_event=cancelled
            )
            video_stream = extraction.frames
            interval = extraction.interval_seconds
            frame_count = extraction.frame_count
        else:
            video_stream = [
                MediaPart(video.data, guess_video_mime_type(video.filename, video.content_type))
            ]

        # 2. document stream
        document_stream: Sequence[StreamItem]
        page_count = 0
        if rasterize_document:
            pages: list[PagePart] = await _run_cancellable(
                self._page_extractor.extract, document.data, on_progress, cancel_event=cancelled
            )
            document_stream = pages
            page_count = len(pages)
        else:
            # uploads often arrive as octet-stream; the deck is always a PDF
            document_stream = [MediaPart(document.data, PDF_MIME_TYPE)]

        # 3. assemble and ask the model
        instruction = build_sync_instruction(
            video_sampled=sample_video,
            document_rasterized=rasterize_document,
            reasoning_language=self._reasoning_language,
        )
        payload = self._assembler.assemble(video_stream, document_stream, instruction)

        report_progress(
            on_progress,
            ProgressEvent(stage="model", current=0, total=1, message="Matching slides to video"),
        )
        raw_items = await self._call_model(payload)

        # 4. parse and correct
        events = parse_sync_events(raw_items)
        corrected = TemporalCorrector(interval).correct(events)

        logger.info(
            "Synchronization complete",
            extra={
                "events": len(corrected),
                "interval": interval,
                "frames": frame_count,
                "pages": page_count,
            },
        )

        return SyncResult(
            events=corrected,
            sampling_interval=interval,
            frame_count=frame_count,
            page_count=page_count,
            video_sampled=sample_video,
            document_rasterized=rasterize_document,
        )

    def _sample_video(
        self,
        video: MediaFile,
        on_progress: Optional[ProgressCallback],
        cancel_event: threading.Event,
    ) -> FrameExtraction:
        with self._frame_source_factory(video.data, video.filename) as source:
            return self._frame_extractor.extract(source, on_progress, cancel_event)

    async def _call_model(self, payload: AssembledPayload) -> list[Any]:
        try:
            raw_items = await self._model_client.generate_sync_events(payload.parts)
        except ModelBoundaryError as e:
            e.video_bytes = payload.video_bytes
            e.document_bytes = payload.document_bytes
            logger.error(
                "Model call failed",
                extra={
                    "error": e.message,
                    "status": e.status_code,
                    "video_bytes": payload.video_bytes,
                    "document_bytes": payload.document_bytes,
                },
            )
            raise

        if not isinstance(raw_items, list):
            raise ModelResponseError("Model did not return an event list")
        return raw_items


async def _run_cancellable(func, *args, cancel_event: threading.Event):
    """
    Run blocking `func` in a worker thread.

    A thread can't be interrupted, so cancellation of the awaiting task
    sets `cancel_event`; `func` checks it between steps and unwinds,
    releasing its frame source or document on the way out.
    """
    try:
        return await asyncio.to_thread(func, *args, cancel_event)
    except asyncio.CancelledError:
        cancel_event.set()
        logger.info("Synchronization cancelled, stopping extraction")
        raise
