"""
Error taxonomy for the synchronization pipeline.

Extraction-stage errors abort the run: a dropped frame or page would silently
desynchronize the marker/image correspondence the model relies on. Per-event
problems in the model's answer are repaired locally and never escalate.

Every error knows which stage raised it, so a single human-readable message
can be rendered with `explain_failure`.
"""

from typing import Optional


class SlideSyncError(Exception):
    """Base class for all pipeline failures."""

    stage = "pipeline"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def describe(self) -> str:
        """One-line description including stage and underlying cause."""
        text = f"[{self.stage}] {self.message}"
        if self.cause is not None:
            text += f" ({type(self.cause).__name__}: {self.cause})"
        return text


class InvalidDurationError(SlideSyncError):
    """Raised when a video's length is unusable for sampling."""

    stage = "video"

    def __init__(self, duration: float) -> None:
        super().__init__(f"Video duration is invalid: {duration!r}")
        self.duration = duration


class FrameExtractionError(SlideSyncError):
    """Raised when seeking, capturing or encoding a frame fails."""

    stage = "video"

    def __init__(
        self,
        message: str,
        timestamp_seconds: Optional[float] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        if timestamp_seconds is not None:
            message = f"{message} at {timestamp_seconds:.2f}s"
        super().__init__(message, cause)
        self.timestamp_seconds = timestamp_seconds


class DocumentDecodeError(SlideSyncError):
    """Raised when the slide deck cannot be opened or a page cannot be rendered."""

    stage = "document"

    def __init__(
        self,
        message: str,
        page_number: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        if page_number is not None:
            message = f"{message} (page {page_number})"
        super().__init__(message, cause)
        self.page_number = page_number


class UnsupportedContentPartError(SlideSyncError):
    """Raised when something other than a text or media part reaches the payload."""

    stage = "payload"


class MalformedEventError(SlideSyncError):
    """Raised when a returned event lacks required fields. Always repaired locally."""

    stage = "correction"


# ---------------------------------------------------------------------------
# Model boundary
# ---------------------------------------------------------------------------

class ModelBoundaryError(SlideSyncError):
    """
    Raised when the inference model call fails.

    The synchronizer fills in the payload byte totals before re-raising,
    so the explanation can point at whichever input is heavier.
    """

    stage = "model"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause)
        self.status_code = status_code
        self.video_bytes = 0
        self.document_bytes = 0


class PayloadTooLargeError(ModelBoundaryError):
    """The model rejected the request body as too large (HTTP 413)."""


class RequestRejectedError(ModelBoundaryError):
    """The model rejected the request, usually for exceeding its context (HTTP 400)."""


class RateLimitExceeded(ModelBoundaryError):
    """The model's rate limit was hit (HTTP 429)."""


class ModelResponseError(ModelBoundaryError):
    """The model answered but returned no usable event list."""


# ---------------------------------------------------------------------------
# User-facing messages
# ---------------------------------------------------------------------------

def _reduction_advice(error: ModelBoundaryError) -> str:
    if error.video_bytes >= error.document_bytes:
        return "Try a shorter video or trim it to the presented section."
    return "Try reducing the PDF size or its image quality."


def explain_failure(error: SlideSyncError) -> str:
    """Render an error as a single message suitable for end users."""
    if isinstance(error, PayloadTooLargeError):
        return f"The combined upload is too large for the model. {_reduction_advice(error)}"
    if isinstance(error, RequestRejectedError):
        return (
            "The model rejected the request, most likely because the payload "
            f"exceeds its context limit. {_reduction_advice(error)}"
        )
    if isinstance(error, RateLimitExceeded):
        return "The model's rate limit was reached. Please try again later."
    if isinstance(error, InvalidDurationError):
        return "Could not read the video length. Please check that the video file is complete."
    if isinstance(error, FrameExtractionError):
        return f"Could not sample the video: {error.message}."
    if isinstance(error, DocumentDecodeError):
        return f"Could not process the PDF, please check the file is not damaged: {error.message}."
    return error.describe()
