"""
Domain models for slide synchronization.

These models represent the values that flow through the pipeline. They have
no dependencies on external frameworks or APIs, and every one of them is
frozen: each stage produces a new value and never mutates its input.
"""

import math
import re
from dataclasses import dataclass
from typing import Callable, Optional, Union


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

_TIMESTAMP_PATTERN = re.compile(r"^\s*(\d+)\s*:\s*(\d+)")


def format_timestamp(seconds: float) -> str:
    """Format seconds as zero-padded MM:SS. Sub-second precision is dropped."""
    total = max(0, math.floor(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def parse_timestamp(text: str) -> Optional[int]:
    """
    Parse an MM:SS string into whole seconds.

    Returns None when the text doesn't start with two colon-separated
    integers. Trailing content (fractions, suffixes) is ignored.
    """
    if not isinstance(text, str):
        return None
    match = _TIMESTAMP_PATTERN.match(text)
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


# ---------------------------------------------------------------------------
# Content parts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextPart:
    """A text element of the payload: a marker or the instruction."""
    text: str


@dataclass(frozen=True)
class MediaPart:
    """
    A binary element of the payload.

    Sampled frames and rendered pages are JPEG images; an inline submission
    carries the whole original file with its own MIME type.
    """
    data: bytes
    mime_type: str

    def __post_init__(self) -> None:
        if not self.mime_type:
            raise ValueError("Media parts need a MIME type")

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


ContentPart = Union[TextPart, MediaPart]


@dataclass(frozen=True)
class FramePart:
    """A marker/image pair captured at one sampled instant."""
    timestamp_seconds: float
    marker: TextPart
    image: MediaPart

    @classmethod
    def at(cls, timestamp_seconds: float, jpeg: bytes) -> "FramePart":
        marker = TextPart(
            f"[VIDEO_FRAME_TIMESTAMP: {format_timestamp(timestamp_seconds)} "
            f"(Seconds: {math.floor(timestamp_seconds)})]"
        )
        return cls(timestamp_seconds, marker, MediaPart(jpeg, "image/jpeg"))

    @property
    def parts(self) -> tuple[TextPart, MediaPart]:
        return (self.marker, self.image)


@dataclass(frozen=True)
class PagePart:
    """A marker/image pair for one rendered document page (1-based)."""
    page_number: int
    marker: TextPart
    image: MediaPart

    @classmethod
    def for_page(cls, page_number: int, jpeg: bytes) -> "PagePart":
        if page_number < 1:
            raise ValueError("Page numbers are 1-based")
        marker = TextPart(f"[PDF_PAGE_NUMBER_{page_number}]")
        return cls(page_number, marker, MediaPart(jpeg, "image/jpeg"))

    @property
    def parts(self) -> tuple[TextPart, MediaPart]:
        return (self.marker, self.image)


@dataclass(frozen=True)
class FrameExtraction:
    """Result of one sampling run: the frames plus the interval actually used."""
    frames: tuple[FramePart, ...]
    interval_seconds: int
    duration_seconds: float

    @property
    def frame_count(self) -> int:
        return len(self.frames)


# ---------------------------------------------------------------------------
# Sync events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SyncEvent:
    """
    One slide appearance as reported by the model.

    `seconds` may be missing when the model didn't fill it in;
    `timestamp` is then the source of truth.
    """
    timestamp: str
    seconds: Optional[float]
    pdf_page_number: int
    slide_title: str
    reasoning: str

    def to_dict(self) -> dict:
        """Wire representation, using the model's field names."""
        return {
            "timestamp": self.timestamp,
            "seconds": self.seconds,
            "pdfPageNumber": self.pdf_page_number,
            "slideTitle": self.slide_title,
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class CorrectedSyncEvent(SyncEvent):
    """A SyncEvent after temporal correction. `seconds` is always populated."""
    original_seconds: float = 0.0
    offset_seconds: float = 0.0

    @property
    def was_shifted(self) -> bool:
        return self.offset_seconds > 0


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProgressEvent:
    """An observational progress notification. Never affects control flow."""
    stage: str
    current: float
    total: float
    message: str = ""


ProgressCallback = Callable[[ProgressEvent], None]
