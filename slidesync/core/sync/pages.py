"""
Slide deck rasterization.

Each PDF page becomes one JPEG, preceded by a page-number marker. Pages are
rendered one at a time through a single open document; a failure on any page
aborts the whole run because the model needs the complete page index space
to resolve references.

Page text legibility matters more here than payload size, so pages are
rendered larger and encoded at a higher quality than video frames.
"""

import io
import logging
import threading
from typing import Optional

import pdfplumber

from .errors import DocumentDecodeError
from .imaging import encode_jpeg
from .models import PagePart, ProgressCallback, ProgressEvent
from .progress import report_progress

logger = logging.getLogger(__name__)

PAGE_MAX_DIMENSION = 1024
PAGE_BASE_SCALE = 1.5
PAGE_JPEG_QUALITY = 60

# PDF user space is 72 units per inch
_POINTS_PER_INCH = 72


class DocumentPageExtractor:
    """Renders every page of a PDF into marker/image pairs, in page order."""

    def __init__(
        self,
        max_dimension: int = PAGE_MAX_DIMENSION,
        base_scale: float = PAGE_BASE_SCALE,
        jpeg_quality: int = PAGE_JPEG_QUALITY,
    ) -> None:
        if max_dimension < 1:
            raise ValueError("max_dimension must be positive")
        if base_scale <= 0:
            raise ValueError("base_scale must be positive")
        self.max_dimension = max_dimension
        self.base_scale = base_scale
        self.jpeg_quality = jpeg_quality

    def render_scale(self, page_width: float, page_height: float) -> float:
        """
        Magnification applied to a page of the given size in points.

        Starts from the base magnification and shrinks it so the longer
        rendered side fits within `max_dimension`. Never grows past base.
        """
        longest = max(page_width, page_height) * self.base_scale
        if longest <= 0:
            raise ValueError("Page has no area")
        return self.base_scale * min(1.0, self.max_dimension / longest)

    def extract(
        self,
        document_data: bytes,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[PagePart]:
        """
        Render all pages of `document_data`.

        Raises DocumentDecodeError if the document can't be opened, has no
        pages, or any page fails to render. Setting `cancel_event`
        stops rendering before the next page.
        """
        try:
            pdf = pdfplumber.open(io.BytesIO(document_data))
        except Exception as e:
            raise DocumentDecodeError("Could not open document", cause=e) from e

        with pdf:
            try:
                pages = pdf.pages
            except Exception as e:
                raise DocumentDecodeError("Could not read document pages", cause=e) from e

            total = len(pages)
            if total == 0:
                raise DocumentDecodeError("Document has no pages")

            logger.info("Rasterizing document", extra={"pages": total})

            parts: list[PagePart] = []
            for page_number, page in enumerate(pages, start=1):
                if cancel_event is not None and cancel_event.is_set():
                    raise DocumentDecodeError("Rendering cancelled", page_number)
                parts.append(self._render_page(page, page_number))
                report_progress(
                    on_progress,
                    ProgressEvent(
                        stage="document",
                        current=page_number,
                        total=total,
                        message=f"Converted page {page_number} / {total}",
                    ),
                )

        logger.info("Document rasterization complete", extra={"pages": len(parts)})
        return parts

    def _render_page(self, page, page_number: int) -> PagePart:
        try:
            scale = self.render_scale(float(page.width), float(page.height))
            rendered = page.to_image(resolution=_POINTS_PER_INCH * scale)
            jpeg = encode_jpeg(rendered.original, self.jpeg_quality)
        except Exception as e:
            raise DocumentDecodeError("Could not render page", page_number, cause=e) from e

        return PagePart.for_page(page_number, jpeg)
