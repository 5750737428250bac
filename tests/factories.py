"""Test data factories for building test objects."""
from datetime import date
from decimal import Decimal

import fitz

from bill_analyzer.models.internal import PartialBill
from bill_analyzer.models.schema import BillRecord, ChargeType
from bill_analyzer.passes.pass2_completion import complete_bill
from bill_analyzer.randomness import SeededRandomSource

# A tiny valid 1x1 PNG
PNG_PIXEL = b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00\x90wS\xde\x00\x00\x00\x0cIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82'

SAMPLE_BILL_TEXT = """\
MERALCO
Statement of Account
Customer Name: Juan Dela Cruz
Account Number: 1540181739
Customer Type: Residential
Meter No.: 34567890
Billing Month: May 2025
Billing Period: 04/10/2025 to 05/10/2025
Due Date: 05/24/2025
Next Meter Reading: 06/10/2025
Previous Reading 18622
Present Reading 18805
Total kWh Used 183
Rate per kWh 11.91
Generation Charge 1198.79
Transmission Charge 174.37
System Loss Charge 130.77
Distribution Charge 348.74
Subsidies 21.83
Government Taxes 217.96
Universal Charges 43.59
Feed-in Tariff Allowance 15.25
Other Charges 28.33
Total Amount Due: ₱2,179.63
"""

SCENARIO_A_TEXT = """\
Total Amount Due: ₱2179.63
Present Reading 18805
Previous Reading 18622
"""

SCENARIO_C_TEXT = """\
Total kWh 183
Rate per kWh 11.75
"""


def make_partial_bill(**overrides) -> PartialBill:
    """A sparse bill holding only what the overrides give."""
    return PartialBill(**overrides)


def make_charges(**amounts) -> dict[ChargeType, Decimal]:
    return {ChargeType(name): Decimal(str(amount)) for name, amount in amounts.items()}


def make_record(
    partial: PartialBill | None = None,
    raw_text: str = "",
    seed: int = 7,
    today: date = date(2025, 6, 15),
) -> BillRecord:
    """A complete record built by the completion pass."""
    result = complete_bill(
        partial or PartialBill(),
        raw_text,
        rng=SeededRandomSource(seed),
        today=today,
    )
    return result.record


def make_pdf(text: str = "Total Amount Due: 2179.63", pages: int = 1) -> bytes:
    """A real PDF with ``text`` embedded on every page."""
    doc = fitz.open()
    for _ in range(pages):
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data
