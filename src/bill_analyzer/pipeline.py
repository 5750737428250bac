"""Pipeline orchestrator: Pass 0 → OCR → 1 → 2 → 3 → suggestions."""
from __future__ import annotations

import time
from collections.abc import Callable
from datetime import date

import structlog

from .config import Settings
from .errors import OCRError
from .insights.suggestions import generate_suggestions
from .models.internal import BillAnalysis, IngestionResult
from .ocr.base import OCRClient
from .ocr.tesseract_client import TesseractOCRClient
from .passes.pass0_ingestion import run_pass0
from .passes.pass1_extraction import extract_fields
from .passes.pass2_completion import complete_bill
from .passes.pass3_validation import run_pass3
from .randomness import RandomSource, SeededRandomSource
from .utils.hashing import compute_string_hash

logger = structlog.get_logger(__name__)


class BillAnalysisPipeline:
    """Orchestrates one bill from file bytes to a complete record.

    Holds configuration and collaborators only. Every call builds a new
    record from a fresh random source, so a seeded pipeline gives the same
    synthetic values for the same text on every call.
    """

    def __init__(
        self,
        settings: Settings,
        ocr_client: OCRClient | None = None,
        rng_factory: Callable[[], RandomSource] | None = None,
    ):
        self.settings = settings
        self.ocr_client = ocr_client or TesseractOCRClient(
            language=settings.ocr_language,
            tesseract_cmd=settings.tesseract_cmd,
        )
        self.rng_factory = rng_factory or (lambda: SeededRandomSource(settings.random_seed))

    async def recognize_text(self, ingestion: IngestionResult) -> str:
        """OCR every page and join the text. Raises ``OCRError`` if any page fails."""
        texts: list[str] = []
        for page in ingestion.pages:
            try:
                text = await self.ocr_client.recognize(page.image_bytes)
            except OCRError:
                raise
            except Exception as e:
                logger.error("ocr_page_failed", page=page.page_number, error=str(e))
                raise OCRError(f"OCR failed on page {page.page_number}: {e}") from e
            texts.append(text)
            if page.embedded_text:
                texts.append(page.embedded_text)
        return "\n".join(texts)

    async def process(self, file_bytes: bytes, filename: str, today: date | None = None) -> BillAnalysis:
        """Run the full pipeline on an uploaded file."""
        start_time = time.monotonic()
        logger.info("pipeline_start", filename=filename, size_bytes=len(file_bytes))

        ingestion = run_pass0(file_bytes, max_bytes=self.settings.max_upload_bytes, dpi=self.settings.dpi)
        raw_text = await self.recognize_text(ingestion)
        logger.info(
            "pipeline_ocr_complete",
            engine=self.ocr_client.get_engine_name(),
            chars=len(raw_text),
            text_hash=compute_string_hash(raw_text)[:16],
        )

        analysis = self.analyze_text(raw_text, today=today)
        analysis.file_hash = ingestion.file_hash

        logger.info(
            "pipeline_complete",
            filename=filename,
            processing_time_ms=int((time.monotonic() - start_time) * 1000),
        )
        return analysis

    def analyze_text(self, raw_text: str, today: date | None = None) -> BillAnalysis:
        """Extraction, completion, validation and suggestions over OCR text."""
        tariff = self.settings.tariff
        partial = extract_fields(raw_text)
        completion = complete_bill(partial, raw_text, tariff=tariff, rng=self.rng_factory(), today=today)
        validation = run_pass3(completion.record, tariff)
        for issue in validation.issues:
            logger.warning("pipeline_validation_issue", field=issue.field, severity=issue.severity, message=issue.message)
        return BillAnalysis(
            record=completion.record,
            provenance=completion.provenance,
            issues=validation.issues,
            suggestions=generate_suggestions(completion.record, tariff),
        )
