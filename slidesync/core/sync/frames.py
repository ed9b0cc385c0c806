"""
Video frame sampling.

The extractor drives a strict seek -> capture loop over one media timeline.
A decoder has exactly one current position, so the next seek is never issued
before the previous capture has finished. The loop is modelled as an explicit
state machine to make that ordering checkable.

Decoding itself sits behind the FrameSource protocol: the FFmpeg-backed
implementation lives in infrastructure, and tests can supply their own.
"""

import logging
import threading
from enum import Enum
from typing import Optional, Protocol

from PIL import Image

from .errors import FrameExtractionError, InvalidDurationError
from .imaging import downscale_to_fit, encode_jpeg
from .models import (
    FrameExtraction,
    FramePart,
    ProgressCallback,
    ProgressEvent,
    format_timestamp,
)
from .planning import TARGET_FRAME_COUNT, expected_frame_count, plan_sampling_interval
from .progress import report_progress

logger = logging.getLogger(__name__)

FRAME_MAX_DIMENSION = 256
FRAME_JPEG_QUALITY = 30


class FrameSource(Protocol):
    """
    A decoder positioned on one video timeline.

    Implementations are context managers so that temporary files and
    decoder handles are released on every exit path.
    """

    @property
    def duration_seconds(self) -> float:
        """Total playable length. May be non-finite if the container lies."""
        ...

    def seek(self, timestamp: float) -> None:
        """Move the decoder to `timestamp` seconds."""
        ...

    def capture(self) -> Image.Image:
        """Return the frame at the current position."""
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> "FrameSource":
        ...

    def __exit__(self, *exc_info) -> None:
        ...


class ExtractionState(Enum):
    """States of the seek/capture loop."""
    IDLE = "idle"
    SEEKING = "seeking"
    CAPTURED = "captured"
    DONE = "done"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    ExtractionState.IDLE: {ExtractionState.SEEKING, ExtractionState.DONE, ExtractionState.FAILED},
    ExtractionState.SEEKING: {ExtractionState.CAPTURED, ExtractionState.FAILED},
    ExtractionState.CAPTURED: {ExtractionState.SEEKING, ExtractionState.DONE, ExtractionState.FAILED},
    ExtractionState.DONE: set(),
    ExtractionState.FAILED: set(),
}


class ExtractionStateMachine:
    """
    Tracks one sampling run.

    Only IDLE or CAPTURED may move to SEEKING, so a second seek can never
    start while one is outstanding.
    """

    def __init__(self) -> None:
        self.state = ExtractionState.IDLE
        self.position: Optional[float] = None

    def advance(self, target: ExtractionState, position: Optional[float] = None) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid extraction transition: {self.state.value} -> {target.value}"
            )
        self.state = target
        if position is not None:
            self.position = position

    def fail(self) -> None:
        self.state = ExtractionState.FAILED


class VideoFrameExtractor:
    """
    Samples a video at a planned interval into marker/image pairs.

    A frame is emitted for every sample time strictly less than the
    duration, so a run yields ceil(duration / interval) frames spaced
    exactly `interval` seconds apart, starting at 0.

    The extractor holds configuration only; each call to `extract` tracks
    its own state, so one instance can serve many runs.
    """

    def __init__(
        self,
        target_frame_count: int = TARGET_FRAME_COUNT,
        max_dimension: int = FRAME_MAX_DIMENSION,
        jpeg_quality: int = FRAME_JPEG_QUALITY,
    ) -> None:
        self.target_frame_count = target_frame_count
        self.max_dimension = max_dimension
        self.jpeg_quality = jpeg_quality

    def extract(
        self,
        source: FrameSource,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> FrameExtraction:
        """
        Run the sampling loop over an open frame source.

        Raises InvalidDurationError before touching any frame if the
        source's duration is unusable, and FrameExtractionError (with the
        failing timestamp) if any seek, capture or encode fails. Setting
        `cancel_event` stops the loop before the next seek.
        """
        run = ExtractionStateMachine()
        duration = source.duration_seconds
        try:
            interval = plan_sampling_interval(duration, self.target_frame_count)
        except InvalidDurationError:
            run.fail()
            raise

        logger.info(
            "Sampling video",
            extra={
                "duration": duration,
                "interval": interval,
                "expected_frames": expected_frame_count(duration, interval),
            },
        )

        frames: list[FramePart] = []
        current = 0
        while current < duration:
            if cancel_event is not None and cancel_event.is_set():
                run.fail()
                raise FrameExtractionError("Extraction cancelled", current)
            frames.append(self._sample_at(source, current, run))
            report_progress(
                on_progress,
                ProgressEvent(
                    stage="video",
                    current=current,
                    total=duration,
                    message=f"Extracting frame {format_timestamp(current)} / {format_timestamp(duration)}",
                ),
            )
            current += interval

        run.advance(ExtractionState.DONE)
        logger.info("Video sampling complete", extra={"frames": len(frames)})

        return FrameExtraction(
            frames=tuple(frames),
            interval_seconds=interval,
            duration_seconds=duration,
        )

    def _sample_at(
        self,
        source: FrameSource,
        timestamp: int,
        run: ExtractionStateMachine,
    ) -> FramePart:
        """Seek, capture and encode one frame."""
        run.advance(ExtractionState.SEEKING, timestamp)
        try:
            source.seek(timestamp)
            image = source.capture()
            run.advance(ExtractionState.CAPTURED)
            jpeg = encode_jpeg(downscale_to_fit(image, self.max_dimension), self.jpeg_quality)
        except FrameExtractionError:
            run.fail()
            raise
        except Exception as e:
            run.fail()
            raise FrameExtractionError("Could not capture frame", timestamp, cause=e) from e

        return FramePart.at(timestamp, jpeg)
