"""Test Pass 1 field extraction."""
from datetime import date
from decimal import Decimal

import pytest

from bill_analyzer.models.schema import ChargeType
from bill_analyzer.passes.pass1_extraction import (
    FIELD_RULES,
    apply_rule,
    extract_fields,
    normalize_text,
)
from tests.factories import SAMPLE_BILL_TEXT, SCENARIO_A_TEXT, SCENARIO_C_TEXT


def _rule(field):
    return next(rule for rule in FIELD_RULES if rule.field == field)


class TestNormalizeText:
    def test_collapses_whitespace_per_line(self):
        assert normalize_text("Total   Amount\t Due\r\n  2179.63 ") == "Total Amount Due\n2179.63"

    def test_nfkc_folds_fullwidth_digits(self):
        assert normalize_text("Total ２１７９.６３") == "Total 2179.63"

    def test_drops_control_characters(self):
        assert normalize_text("Meter\x00 No") == "Meter No"


class TestSampleBill:
    @pytest.fixture
    def partial(self):
        return extract_fields(SAMPLE_BILL_TEXT)

    def test_identity(self, partial):
        assert partial.account_number == "1540181739"
        assert partial.customer_name == "Juan Dela Cruz"
        assert partial.customer_type == "Residential"
        assert partial.meter_number == "34567890"

    def test_dates(self, partial):
        assert partial.billing_month == "May 2025"
        assert partial.billing_period_start == date(2025, 4, 10)
        assert partial.billing_period_end == date(2025, 5, 10)
        assert partial.due_date == date(2025, 5, 24)
        assert partial.next_reading_date == date(2025, 6, 10)

    def test_usage(self, partial):
        assert partial.previous_reading == Decimal("18622")
        assert partial.current_reading == Decimal("18805")
        assert partial.total_kwh == Decimal("183")
        assert partial.rate_per_kwh == Decimal("11.91")

    def test_charges(self, partial):
        assert len(partial.charges) == 9
        assert partial.charges[ChargeType.GENERATION] == Decimal("1198.79")
        assert partial.charges[ChargeType.SUBSIDY] == Decimal("21.83")
        assert partial.charges[ChargeType.FEED_IN_TARIFF] == Decimal("15.25")
        assert partial.total_amount == Decimal("2179.63")


class TestAccountNumber:
    def test_labelled_value_exactly(self):
        assert extract_fields("Account Number: 1540181739").account_number == "1540181739"

    def test_value_on_next_line(self):
        assert extract_fields("Account No.\n1540181739").account_number == "1540181739"

    def test_label_without_digits_is_rejected(self):
        assert extract_fields("Account Number: PENDING").account_number is None

    def test_can_in_prose_is_not_a_label(self):
        assert extract_fields("You can pay online").account_number is None


class TestNumbers:
    def test_currency_and_thousands(self):
        assert extract_fields("Total Amount Due: PHP 2,179.63").total_amount == Decimal("2179.63")

    def test_peso_sign(self):
        assert extract_fields(SCENARIO_A_TEXT).total_amount == Decimal("2179.63")

    def test_rate_is_not_read_as_kwh(self):
        partial = extract_fields("kWh 11.75/kWh")
        assert partial.total_kwh is None

    def test_rate_prefix_before_charge_amount(self):
        partial = extract_fields("Generation Charge 6.5432/kWh 1,198.79")
        assert partial.charges[ChargeType.GENERATION] == Decimal("1198.79")

    def test_scenario_c(self):
        partial = extract_fields(SCENARIO_C_TEXT)
        assert partial.total_kwh == Decimal("183")
        assert partial.rate_per_kwh == Decimal("11.75")
        assert partial.total_amount is None


class TestDates:
    def test_invalid_period_is_dropped(self):
        partial = extract_fields("Billing Period: 05/10/2025 to 04/10/2025")
        assert partial.billing_period_start is None
        assert partial.billing_period_end is None

    def test_named_month_dates(self):
        partial = extract_fields("Due Date: May 24, 2025")
        assert partial.due_date == date(2025, 5, 24)

    def test_unparseable_due_date(self):
        assert extract_fields("Due Date: 13/45/2025").due_date is None


class TestApplyRule:
    def test_first_parseable_match_wins(self):
        text = "Customer Name: 12345678\nCustomer Name: Ana Reyes"
        assert apply_rule(_rule("customer_name"), text) == "Ana Reyes"

    def test_none_when_absent(self):
        assert apply_rule(_rule("meter_number"), "nothing here") is None


class TestEmptyInput:
    @pytest.mark.parametrize("text", ["", None, "   \n\n  "])
    def test_empty_text_yields_empty_partial(self, text):
        assert extract_fields(text).is_empty()
