"""Test inter-pass data models."""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from bill_analyzer.models.internal import (
    BillAnalysis,
    PartialBill,
    Pass3Result,
    ResolutionSource,
    ValidationIssue,
)
from bill_analyzer.models.schema import ChargeType
from bill_analyzer.passes.pass1_extraction import extract_fields
from tests.factories import SAMPLE_BILL_TEXT, make_charges, make_partial_bill, make_record


class TestPartialBill:
    def test_empty(self):
        assert PartialBill().is_empty()
        assert PartialBill().present_fields() == []

    def test_present_fields(self):
        partial = make_partial_bill(
            account_number="1540181739",
            total_amount=Decimal("2179.63"),
            charges=make_charges(generation="1198.79"),
        )
        assert partial.present_fields() == ["account_number", "total_amount", "charges.generation"]

    def test_negative_reading_rejected(self):
        with pytest.raises(ValidationError):
            PartialBill(previous_reading=Decimal("-1"))

    def test_from_record_holds_every_primary_field(self):
        record = make_record(extract_fields(SAMPLE_BILL_TEXT), SAMPLE_BILL_TEXT)
        partial = PartialBill.from_record(record)
        assert len(partial.charges) == len(ChargeType)
        assert partial.monthly_consumption == list(record.monthly_consumption)
        assert None not in dict(partial).values()


class TestPass3Result:
    def test_has_fatal(self):
        result = Pass3Result(issues=[ValidationIssue(field="x", severity="fatal", message="m")])
        assert result.has_fatal

    def test_warnings_are_not_fatal(self):
        result = Pass3Result(issues=[ValidationIssue(field="x", severity="warning", message="m")])
        assert not result.has_fatal


class TestBillAnalysis:
    def test_to_response(self):
        record = make_record(extract_fields(SAMPLE_BILL_TEXT), SAMPLE_BILL_TEXT)
        analysis = BillAnalysis(
            record=record,
            provenance={"total_amount": ResolutionSource.FOUND, "monthly_consumption": ResolutionSource.SYNTHESIZED},
            file_hash="abc",
        )
        response = analysis.to_response()
        assert response["record"]["totalAmount"] == "2179.63"
        assert response["provenance"] == {"total_amount": "found", "monthly_consumption": "synthesized"}
        assert response["fileHash"] == "abc"
        assert analysis.fields_from(ResolutionSource.SYNTHESIZED) == ["monthly_consumption"]
