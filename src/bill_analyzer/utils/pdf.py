"""PDF and file-type helpers built on PyMuPDF."""

from __future__ import annotations

from dataclasses import dataclass

import fitz  # PyMuPDF

POINTS_PER_INCH = 72

# Leading bytes per supported upload type
_MAGIC_NUMBERS: tuple[tuple[bytes, str], ...] = (
    (b"%PDF", "pdf"),
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"\xff\xd8", "jpeg"),
    (b"II*\x00", "tiff"),
    (b"MM\x00*", "tiff"),
)


@dataclass(frozen=True)
class RenderedPage:
    png_bytes: bytes
    text: str


def render_pdf_pages(file_bytes: bytes, dpi: int = 300, max_pages: int | None = None) -> tuple[list[RenderedPage], int]:
    """Rasterise PDF pages to PNG and collect each page's embedded text.

    Returns the rendered pages (at most ``max_pages``) and the document's
    total page count. Scanned pages carry an empty ``text``.
    """
    matrix = fitz.Matrix(dpi / POINTS_PER_INCH, dpi / POINTS_PER_INCH)
    with fitz.open(stream=file_bytes, filetype="pdf") as doc:
        page_count = doc.page_count
        limit = page_count if max_pages is None else min(page_count, max_pages)
        pages = [
            RenderedPage(
                png_bytes=doc[index].get_pixmap(matrix=matrix).tobytes("png"),
                text=doc[index].get_text(),
            )
            for index in range(limit)
        ]
    return pages, page_count


def detect_file_type(file_bytes: bytes) -> str:
    """Detect file type from magic bytes.

    Returns one of ``"pdf"``, ``"png"``, ``"jpeg"``, ``"tiff"``, or ``"unknown"``.
    """
    for magic, file_type in _MAGIC_NUMBERS:
        if file_bytes.startswith(magic):
            return file_type
    return "unknown"
