"""Test the pipeline orchestrator with a mocked OCR collaborator."""
from datetime import date
from decimal import Decimal

import pytest

from bill_analyzer.config import Settings
from bill_analyzer.errors import OCRError, UnsupportedFileError
from bill_analyzer.models.internal import ResolutionSource
from bill_analyzer.pipeline import BillAnalysisPipeline
from bill_analyzer.passes.pass3_validation import check_invariants
from bill_analyzer.randomness import SeededRandomSource, SequenceRandomSource
from bill_analyzer.utils.hashing import compute_file_hash
from tests.factories import PNG_PIXEL, SCENARIO_C_TEXT, make_pdf

TODAY = date(2025, 6, 15)


@pytest.fixture
def pipeline(mock_settings, mock_ocr_client):
    return BillAnalysisPipeline(mock_settings, ocr_client=mock_ocr_client)


class TestProcess:
    @pytest.mark.asyncio
    async def test_image_end_to_end(self, pipeline, mock_ocr_client, mock_settings):
        analysis = await pipeline.process(PNG_PIXEL, "bill.png", today=TODAY)
        record = analysis.record
        assert record.account_number == "1540181739"
        assert record.total_amount == Decimal("2179.63")
        assert analysis.file_hash == compute_file_hash(PNG_PIXEL)
        assert analysis.provenance["total_amount"] == ResolutionSource.FOUND
        assert check_invariants(record, mock_settings.tariff) == []
        assert len(analysis.suggestions) >= 3
        mock_ocr_client.recognize.assert_awaited_once_with(PNG_PIXEL)

    @pytest.mark.asyncio
    async def test_pdf_embedded_text_is_used(self, mock_ocr_client):
        mock_ocr_client.recognize.return_value = ""
        settings = Settings(random_seed=5, dpi=72)
        pipeline = BillAnalysisPipeline(settings, ocr_client=mock_ocr_client)
        analysis = await pipeline.process(make_pdf(SCENARIO_C_TEXT), "bill.pdf", today=TODAY)
        assert analysis.record.total_kwh == Decimal("183")
        assert analysis.record.total_amount == Decimal("2150.25")

    @pytest.mark.asyncio
    async def test_unsupported_file_is_rejected_before_ocr(self, pipeline, mock_ocr_client):
        with pytest.raises(UnsupportedFileError):
            await pipeline.process(b"plain text is not a bill image", "bill.txt")
        mock_ocr_client.recognize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ocr_error_propagates(self, pipeline, mock_ocr_client):
        mock_ocr_client.recognize.side_effect = OCRError("engine down")
        with pytest.raises(OCRError, match="engine down"):
            await pipeline.process(PNG_PIXEL, "bill.png")

    @pytest.mark.asyncio
    async def test_unexpected_ocr_failure_becomes_ocr_error(self, pipeline, mock_ocr_client):
        mock_ocr_client.recognize.side_effect = RuntimeError("segfault")
        with pytest.raises(OCRError, match="page 1"):
            await pipeline.process(PNG_PIXEL, "bill.png")


class TestAnalyzeText:
    def test_empty_text_still_completes(self, mock_settings, mock_ocr_client):
        pipeline = BillAnalysisPipeline(mock_settings, ocr_client=mock_ocr_client)
        analysis = pipeline.analyze_text("", today=TODAY)
        assert check_invariants(analysis.record, mock_settings.tariff) == []
        assert "account_number" in analysis.fields_from(ResolutionSource.SYNTHESIZED)

    def test_injected_rng_factory_is_used(self, mock_settings, mock_ocr_client):
        first = BillAnalysisPipeline(mock_settings, mock_ocr_client, rng_factory=lambda: SeededRandomSource(1))
        second = BillAnalysisPipeline(mock_settings, mock_ocr_client, rng_factory=lambda: SeededRandomSource(1))
        assert first.analyze_text("", today=TODAY).record == second.analyze_text("", today=TODAY).record

    def test_rng_factory_called_once_per_analysis(self, mock_settings, mock_ocr_client):
        sources = []

        def factory():
            sources.append(SequenceRandomSource((0.25, 0.75)))
            return sources[-1]

        pipeline = BillAnalysisPipeline(mock_settings, mock_ocr_client, rng_factory=factory)
        pipeline.analyze_text("", today=TODAY)
        pipeline.analyze_text("", today=TODAY)
        assert len(sources) == 2
        assert sources[0].calls == sources[1].calls > 0

    def test_calls_share_no_state(self, mock_settings, mock_ocr_client):
        pipeline = BillAnalysisPipeline(mock_settings, ocr_client=mock_ocr_client)
        first = pipeline.analyze_text("Total Amount Due: 500.00", today=TODAY)
        second = pipeline.analyze_text("Total Amount Due: 900.00", today=TODAY)
        assert first.record.total_amount == Decimal("500.00")
        assert second.record.total_amount == Decimal("900.00")

    def test_seeded_pipeline_repeats_synthetic_values(self, mock_settings, mock_ocr_client):
        pipeline = BillAnalysisPipeline(mock_settings, ocr_client=mock_ocr_client)
        first = pipeline.analyze_text("", today=TODAY)
        second = pipeline.analyze_text("", today=TODAY)
        assert first.record == second.record
        assert first.provenance == second.provenance
