"""
Payload assembly.

The assembler is a pure sequencer: video stream first, then document stream,
then the instruction. Marker/image adjacency and stream order are the only
way the model learns which image belongs to which time or page, so nothing
here ever reorders or rewrites a part.
"""

import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional, Sequence, Union

from .errors import UnsupportedContentPartError
from .models import ContentPart, FramePart, MediaPart, PagePart, TextPart

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
PDF_MIME_TYPE = "application/pdf"

VIDEO_MIME_TYPES = {
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "webm": "video/webm",
    "avi": "video/x-msvideo",
    "wmv": "video/x-ms-wmv",
    "mpg": "video/mpeg",
    "mpeg": "video/mpeg",
}

StreamItem = Union[FramePart, PagePart, TextPart, MediaPart]


def guess_video_mime_type(filename: str, content_type: Optional[str] = None) -> str:
    """
    Map a video filename to a MIME type.

    Known extensions win over the declared content type, which in turn
    wins over the octet-stream fallback.
    """
    extension = PurePath(filename or "").suffix.lower().lstrip(".")
    if extension in VIDEO_MIME_TYPES:
        return VIDEO_MIME_TYPES[extension]
    return content_type or OCTET_STREAM


@dataclass(frozen=True)
class AssembledPayload:
    """The ordered parts handed to the model, plus per-stream byte totals."""
    parts: tuple[ContentPart, ...]
    video_bytes: int
    document_bytes: int

    def __len__(self) -> int:
        return len(self.parts)


class PayloadAssembler:
    """Concatenates the video stream, document stream and instruction."""

    def assemble(
        self,
        video_stream: Sequence[StreamItem],
        document_stream: Sequence[StreamItem],
        instruction: str,
    ) -> AssembledPayload:
        video_parts = self._flatten(video_stream)
        document_parts = self._flatten(document_stream)

        parts = (*video_parts, *document_parts, TextPart(instruction))

        payload = AssembledPayload(
            parts=parts,
            video_bytes=_media_bytes(video_parts),
            document_bytes=_media_bytes(document_parts),
        )
        logger.debug(
            "Assembled payload",
            extra={
                "parts": len(parts),
                "video_bytes": payload.video_bytes,
                "document_bytes": payload.document_bytes,
            },
        )
        return payload

    def _flatten(self, stream: Sequence[StreamItem]) -> list[ContentPart]:
        parts: list[ContentPart] = []
        for item in stream:
            if isinstance(item, (FramePart, PagePart)):
                parts.extend(item.parts)
            elif isinstance(item, (TextPart, MediaPart)):
                parts.append(item)
            else:
                raise UnsupportedContentPartError(
                    f"Unsupported payload item: {type(item).__name__}"
                )
        return parts


def _media_bytes(parts: Sequence[ContentPart]) -> int:
    return sum(len(part.data) for part in parts if isinstance(part, MediaPart))
