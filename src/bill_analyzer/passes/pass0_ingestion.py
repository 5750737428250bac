"""Pass 0: Ingestion -- input rejection and page rendering, no OCR."""
from __future__ import annotations

import structlog

from ..errors import UnsupportedFileError
from ..models.internal import IngestionResult, PageImage
from ..utils.hashing import compute_file_hash
from ..utils.image import get_image_dimensions
from ..utils.pdf import detect_file_type, render_pdf_pages

logger = structlog.get_logger(__name__)

SUPPORTED_FILE_TYPES = ("pdf", "png", "jpeg", "tiff")
MAX_PDF_PAGES = 10


def run_pass0(file_bytes: bytes, max_bytes: int = 10 * 1024 * 1024, dpi: int = 300) -> IngestionResult:
    """Run Pass 0: Ingestion.

    Steps:
    1. Reject empty and oversize input
    2. Detect file type from magic bytes; reject anything OCR cannot read
    3. Compute SHA-256 hash for log correlation
    4. PDFs: render pages as PNG at ``dpi`` and keep any embedded text
    5. Images: confirm the image decodes; one page
    """
    # Step 1: Size checks
    if not file_bytes:
        raise UnsupportedFileError("Empty file")
    if len(file_bytes) > max_bytes:
        raise UnsupportedFileError(f"File too large ({len(file_bytes)} bytes, max {max_bytes})")

    # Step 2: Detect file type
    file_type = detect_file_type(file_bytes)
    logger.info("pass0_file_type_detected", file_type=file_type, size_bytes=len(file_bytes))
    if file_type not in SUPPORTED_FILE_TYPES:
        logger.warning("pass0_unsupported_file_type", file_type=file_type)
        raise UnsupportedFileError(f"Unsupported file type: {file_type}")

    # Step 3: Hash
    file_hash = compute_file_hash(file_bytes)

    pages: list[PageImage] = []
    if file_type == "pdf":
        # Step 4: Render pages and keep embedded text
        try:
            rendered, page_count = render_pdf_pages(file_bytes, dpi=dpi, max_pages=MAX_PDF_PAGES)
        except RuntimeError as e:
            # PyMuPDF raises RuntimeError subclasses for damaged documents
            raise UnsupportedFileError(f"Unreadable PDF: {e}") from e
        if not rendered:
            raise UnsupportedFileError("PDF has no pages")
        if page_count > MAX_PDF_PAGES:
            logger.warning("pass0_pages_truncated", page_count=page_count, kept=MAX_PDF_PAGES)

        for number, page in enumerate(rendered, start=1):
            pages.append(PageImage(
                page_number=number,
                image_bytes=page.png_bytes,
                embedded_text=page.text if page.text.strip() else None,
            ))
        logger.info("pass0_pages_rendered", page_count=len(pages), dpi=dpi)
    else:
        # Step 5: Single image
        try:
            width, height = get_image_dimensions(file_bytes)
        except OSError as e:
            raise UnsupportedFileError(f"Unreadable image: {e}") from e
        logger.info("pass0_image_loaded", width=width, height=height)
        pages.append(PageImage(page_number=1, image_bytes=file_bytes))

    logger.info("pass0_complete", file_hash=file_hash[:16], page_count=len(pages))
    return IngestionResult(file_hash=file_hash, file_type=file_type, pages=pages)
