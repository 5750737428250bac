"""Tesseract OCR client via pytesseract."""
from __future__ import annotations

import asyncio
import time

import pytesseract
import structlog

from ..errors import OCRError
from ..utils.image import preprocess_for_ocr
from .base import OCRClient

logger = structlog.get_logger(__name__)


class TesseractOCRClient(OCRClient):
    """Runs Tesseract in a worker thread so the event loop is never blocked."""

    def __init__(self, language: str = "eng", tesseract_cmd: str = "", config: str = "--psm 6"):
        self.language = language
        self.config = config
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def get_engine_name(self) -> str:
        return f"tesseract:{self.language}"

    def _recognize_sync(self, image: bytes) -> str:
        prepared = preprocess_for_ocr(image)
        return pytesseract.image_to_string(prepared, lang=self.language, config=self.config)

    async def recognize(self, image: bytes) -> str:
        start = time.monotonic()
        try:
            text = await asyncio.to_thread(self._recognize_sync, image)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            logger.error("ocr_failed", engine=self.get_engine_name(), error=str(e))
            raise OCRError(f"Tesseract failed: {e}") from e
        except (OSError, ValueError) as e:
            # PIL raises these for unreadable or truncated images
            logger.error("ocr_image_unreadable", engine=self.get_engine_name(), error=str(e))
            raise OCRError(f"Could not open image: {e}") from e

        latency_ms = int((time.monotonic() - start) * 1000)
        logger.info("ocr_page_recognized", engine=self.get_engine_name(), chars=len(text), latency_ms=latency_ms)
        return text
