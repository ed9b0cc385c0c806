"""
Unit tests for slide deck rasterization.

Decks are generated with Pillow (see conftest) and rendered through
pdfplumber, so these tests exercise the real rendering path.
"""

import io
import threading

import pytest
from PIL import Image

from slidesync.core.sync.errors import DocumentDecodeError
from slidesync.core.sync.pages import DocumentPageExtractor


class TestRenderScale:

    def test_small_pages_use_base_scale(self):
        assert DocumentPageExtractor().render_scale(200, 100) == pytest.approx(1.5)

    def test_large_pages_shrink_to_cap(self):
        extractor = DocumentPageExtractor()

        scale = extractor.render_scale(720, 540)

        assert 720 * scale == pytest.approx(1024)

    def test_portrait_pages_cap_height(self):
        scale = DocumentPageExtractor(max_dimension=500).render_scale(595, 842)

        assert 842 * scale == pytest.approx(500)

    def test_rejects_invalid_configuration(self):
        with pytest.raises(ValueError):
            DocumentPageExtractor(max_dimension=0)
        with pytest.raises(ValueError):
            DocumentPageExtractor(base_scale=0)


class TestDocumentPageExtractor:

    def test_renders_every_page_in_order(self, pdf_bytes):
        pages = DocumentPageExtractor().extract(pdf_bytes)

        assert [p.page_number for p in pages] == [1, 2, 3]
        assert [p.marker.text for p in pages] == [
            "[PDF_PAGE_NUMBER_1]",
            "[PDF_PAGE_NUMBER_2]",
            "[PDF_PAGE_NUMBER_3]",
        ]

    def test_pages_are_jpegs_within_cap(self, pdf_bytes):
        pages = DocumentPageExtractor().extract(pdf_bytes)

        for page in pages:
            assert page.image.mime_type == "image/jpeg"
            with Image.open(io.BytesIO(page.image.data)) as image:
                assert image.format == "JPEG"
                assert max(image.size) <= 1024
                assert max(image.size) >= 1000

    def test_small_pages_render_at_base_scale(self, make_pdf):
        pages = DocumentPageExtractor().extract(make_pdf([(200, 100)]))

        with Image.open(io.BytesIO(pages[0].image.data)) as image:
            width, height = image.size
        assert width == pytest.approx(300, abs=2)
        assert height == pytest.approx(150, abs=2)

    def test_reports_progress_per_page(self, pdf_bytes):
        events = []

        DocumentPageExtractor().extract(pdf_bytes, on_progress=events.append)

        assert [(e.stage, e.current, e.total) for e in events] == [
            ("document", 1, 3),
            ("document", 2, 3),
            ("document", 3, 3),
        ]

    @pytest.mark.parametrize("data", [b"", b"not a pdf at all", b"%PDF-1.4\n%%EOF"])
    def test_undecodable_document_raises(self, data):
        with pytest.raises(DocumentDecodeError) as exc_info:
            DocumentPageExtractor().extract(data)

        assert exc_info.value.stage == "document"

    def test_cancelled_render_raises(self, pdf_bytes):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(DocumentDecodeError, match="cancelled") as exc_info:
            DocumentPageExtractor().extract(pdf_bytes, cancel_event=cancel)

        assert exc_info.value.page_number == 1
