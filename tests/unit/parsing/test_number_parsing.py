"""Test amount parsing for OCR'd bill text."""
from decimal import Decimal

import pytest

from bill_analyzer.parsing.number_parsing import (
    parse_amount,
    parse_non_negative,
    quantize_money,
    strip_currency,
)


class TestStripCurrency:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("₱2179.63", ("2179.63", "PHP")),
            ("PHP 2,179.63", ("2,179.63", "PHP")),
            ("P 95.10", ("95.10", "PHP")),
            ("$12", ("12", "USD")),
            ("183", ("183", None)),
        ],
    )
    def test_markers(self, raw, expected):
        assert strip_currency(raw) == expected


class TestParseAmount:
    def test_thousands(self):
        assert parse_amount("2,179.63") == Decimal("2179.63")

    def test_currency(self):
        assert parse_amount("₱ 1,198.79") == Decimal("1198.79")

    @pytest.mark.parametrize("raw", ["(23.66)", "23.66-", "-23.66"])
    def test_negative_forms(self, raw):
        assert parse_amount(raw) == Decimal("-23.66")

    @pytest.mark.parametrize("raw", ["", "   ", "abc", "12.3.4", "Infinity"])
    def test_rejects(self, raw):
        with pytest.raises(ValueError):
            parse_amount(raw)

    def test_decimal_is_exact(self):
        assert parse_amount("0.10") + parse_amount("0.20") == Decimal("0.30")


class TestParseNonNegative:
    def test_accepts_zero(self):
        assert parse_non_negative("0.00") == Decimal("0")

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            parse_non_negative("(5.00)")


def test_quantize_money():
    assert quantize_money(Decimal("2150.2500")) == Decimal("2150.25")
    assert str(quantize_money(Decimal("7"))) == "7.00"
