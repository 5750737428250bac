"""Amount and quantity parsing for OCR'd bill text."""
from __future__ import annotations
import re
from decimal import Decimal, InvalidOperation

_CURRENCY_RE = re.compile(r'^(?:₱|PHP|P(?=\s*\d)|\$)\s*', re.IGNORECASE)
_NUMERIC_RE = re.compile(r'^\d[\d,]*(?:\.\d+)?$|^\.\d+$')


def strip_currency(raw_string: str) -> tuple[str, str | None]:
    """Strip a leading currency marker. Returns (amount_str, currency_code)."""
    s = raw_string.strip()
    match = _CURRENCY_RE.match(s)
    if not match:
        return s, None
    marker = match.group(0).strip()
    code = "USD" if marker == "$" else "PHP"
    return s[match.end():].strip(), code


def parse_amount(raw_string: str) -> Decimal:
    """Parse a monetary amount or quantity string to ``Decimal``.

    Handles:
    - Thousands commas: "2,179.63" → 2179.63
    - Currency markers: "₱2179.63", "PHP 2,179.63", "P 95.10", "$12"
    - Negative: "(23.66)", "23.66-", "-23.66"
    """
    if not raw_string or not raw_string.strip():
        raise ValueError("Empty amount string")

    cleaned = raw_string.strip()

    # Detect negative
    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1].strip()
    elif cleaned.startswith("-"):
        negative = True
        cleaned = cleaned.lstrip("- ")
    elif cleaned.endswith("-"):
        negative = True
        cleaned = cleaned[:-1].strip()

    cleaned, _ = strip_currency(cleaned)
    cleaned = cleaned.replace(" ", "")

    if not cleaned or not _NUMERIC_RE.match(cleaned):
        raise ValueError(f"No numeric content in: {raw_string}")

    try:
        result = Decimal(cleaned.replace(",", ""))
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse amount: {raw_string}") from e

    if not result.is_finite():
        raise ValueError(f"Non-finite amount: {raw_string}")
    return -result if negative else result


def parse_non_negative(raw_string: str) -> Decimal:
    """``parse_amount`` restricted to values >= 0."""
    value = parse_amount(raw_string)
    if value < 0:
        raise ValueError(f"Negative value not allowed: {raw_string}")
    return value


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"))
