"""Test PDF utilities."""
from bill_analyzer.utils.pdf import detect_file_type, render_pdf_pages
from tests.factories import make_pdf


class TestDetectFileType:
    def test_pdf_magic(self):
        assert detect_file_type(b'%PDF-1.4') == "pdf"

    def test_png_magic(self):
        assert detect_file_type(b'\x89PNG\r\n\x1a\n') == "png"

    def test_jpeg_magic(self):
        assert detect_file_type(b'\xff\xd8\xff\xe0') == "jpeg"

    def test_tiff_le(self):
        assert detect_file_type(b'II*\x00 rest') == "tiff"

    def test_tiff_be(self):
        assert detect_file_type(b'MM\x00* rest') == "tiff"

    def test_unknown(self):
        assert detect_file_type(b'\x00\x01\x02\x03') == "unknown"


class TestRenderPdfPages:
    def test_one_png_per_page(self):
        pages, page_count = render_pdf_pages(make_pdf("Meter No. 34567890", pages=3), dpi=50)
        assert page_count == 3
        assert len(pages) == 3
        assert all(page.png_bytes.startswith(b"\x89PNG") for page in pages)
        assert "34567890" in pages[0].text

    def test_max_pages(self):
        pages, page_count = render_pdf_pages(make_pdf("x", pages=4), dpi=36, max_pages=2)
        assert page_count == 4
        assert len(pages) == 2
