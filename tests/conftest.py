"""Shared test fixtures."""
from datetime import date
from unittest.mock import AsyncMock

import pytest

from bill_analyzer.config import Settings, TariffConfig
from bill_analyzer.ocr.base import OCRClient
from bill_analyzer.randomness import SeededRandomSource, SequenceRandomSource

TODAY = date(2025, 6, 15)


@pytest.fixture
def mock_settings():
    """Settings with a fixed seed and no environment dependence."""
    return Settings(random_seed=1234, log_level="WARNING")


@pytest.fixture
def tariff():
    return TariffConfig()


@pytest.fixture
def rng():
    return SeededRandomSource(42)


@pytest.fixture
def midpoint_rng():
    """Every synthetic draw lands in the middle of its range."""
    return SequenceRandomSource([0.5])


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def mock_ocr_client():
    """OCR client that returns a fixed page of bill text."""
    from tests.factories import SAMPLE_BILL_TEXT

    client = AsyncMock(spec=OCRClient)
    client.get_engine_name.return_value = "mock-ocr"
    client.recognize.return_value = SAMPLE_BILL_TEXT
    return client
