"""Test the Tesseract OCR client with pytesseract mocked out."""
from unittest.mock import patch

import pytest
import pytesseract

from bill_analyzer.errors import OCRError
from bill_analyzer.ocr.tesseract_client import TesseractOCRClient
from tests.factories import PNG_PIXEL


@pytest.fixture
def client():
    return TesseractOCRClient(language="eng")


class TestTesseractOCRClient:
    def test_engine_name(self, client):
        assert client.get_engine_name() == "tesseract:eng"

    @pytest.mark.asyncio
    async def test_recognize(self, client):
        with patch.object(pytesseract, "image_to_string", return_value="Total Amount Due: 2179.63") as ocr:
            text = await client.recognize(PNG_PIXEL)
        assert text == "Total Amount Due: 2179.63"
        _, kwargs = ocr.call_args
        assert kwargs["lang"] == "eng"
        assert kwargs["config"] == "--psm 6"

    @pytest.mark.asyncio
    async def test_tesseract_failure(self, client):
        with patch.object(pytesseract, "image_to_string", side_effect=pytesseract.TesseractError(1, "boom")):
            with pytest.raises(OCRError, match="Tesseract failed"):
                await client.recognize(PNG_PIXEL)

    @pytest.mark.asyncio
    async def test_tesseract_missing(self, client):
        with patch.object(pytesseract, "image_to_string", side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(OCRError):
                await client.recognize(PNG_PIXEL)

    @pytest.mark.asyncio
    async def test_unreadable_image(self, client):
        with pytest.raises(OCRError, match="Could not open image"):
            await client.recognize(b"\x89PNG\r\n\x1a\n truncated")
