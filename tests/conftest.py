"""
Shared fixtures.

Slide decks are generated with Pillow's PDF writer at 72 dpi, so a page's
pixel size equals its size in PDF points.
"""

import io

import pytest
from PIL import Image


def build_pdf(page_sizes: list[tuple[int, int]]) -> bytes:
    pages = [
        Image.new("RGB", size, (255, 255 - 40 * index % 256, 255))
        for index, size in enumerate(page_sizes)
    ]
    buffer = io.BytesIO()
    pages[0].save(
        buffer,
        format="PDF",
        save_all=True,
        append_images=pages[1:],
        resolution=72.0,
    )
    return buffer.getvalue()


@pytest.fixture
def make_pdf():
    """Factory for PDFs with the given page sizes (in points)."""
    return build_pdf


@pytest.fixture
def pdf_bytes() -> bytes:
    """A three-page 4:3 slide deck."""
    return build_pdf([(720, 540)] * 3)
