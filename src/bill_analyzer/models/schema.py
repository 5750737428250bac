"""Output schema for an analysed utility bill.

A ``BillRecord`` is always complete: every field is resolved and the
arithmetic between charges, totals, readings and derived analytics is checked
when the record is constructed. Records are frozen snapshots.

Numeric values are ``Decimal`` so that JSON output (strings) round-trips
without binary floating point drift.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

NonNegative = Annotated[Decimal, Field(ge=0, allow_inf_nan=False)]

SUM_TOLERANCE = Decimal("0.01")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ChargeType(StrEnum):
    """Charge components in bill order."""

    GENERATION = "generation"
    TRANSMISSION = "transmission"
    SYSTEM_LOSS = "system_loss"
    DISTRIBUTION = "distribution"
    SUBSIDY = "subsidy"
    GOVERNMENT_TAXES = "government_taxes"
    UNIVERSAL = "universal"
    FEED_IN_TARIFF = "feed_in_tariff"
    OTHER = "other"


class SuggestionImpact(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


class Charges(_WireModel):
    """The fixed taxonomy of charge components, each non-negative."""

    generation: NonNegative
    transmission: NonNegative
    system_loss: NonNegative
    distribution: NonNegative
    subsidy: NonNegative
    government_taxes: NonNegative
    universal: NonNegative
    feed_in_tariff: NonNegative
    other: NonNegative

    def get(self, charge: ChargeType) -> Decimal:
        return getattr(self, charge.value)

    def as_dict(self) -> dict[ChargeType, Decimal]:
        return {charge: self.get(charge) for charge in ChargeType}

    def total(self) -> Decimal:
        return sum((self.get(charge) for charge in ChargeType), Decimal("0"))


class MonthlyConsumption(_WireModel):
    month: str = Field(min_length=1)
    consumption: NonNegative


class ComparisonData(_WireModel):
    current_consumption: NonNegative
    previous_consumption: Annotated[Decimal, Field(gt=0, allow_inf_nan=False)]
    percentage_change: Annotated[Decimal, Field(allow_inf_nan=False)]
    compared_to: str


class EnvironmentalImpact(_WireModel):
    electricity_used_kwh: NonNegative
    ghg_emissions_tons: NonNegative
    offset_trees: int = Field(ge=0)


def percentage_change(current: Decimal, previous: Decimal) -> Decimal:
    """Month-over-month change in percent. ``previous`` must be positive."""
    return (current - previous) / previous * 100


# ---------------------------------------------------------------------------
# Top-level record
# ---------------------------------------------------------------------------


class BillRecord(_WireModel):
    """A complete, internally consistent bill."""

    # Identity
    account_number: str = Field(min_length=1)
    customer_name: str = Field(min_length=1)
    customer_type: str = Field(min_length=1)
    meter_number: str = Field(min_length=1)

    # Billing period
    billing_month: str = Field(min_length=1)
    due_date: date
    billing_period_start: date
    billing_period_end: date
    next_reading_date: date

    # Usage
    previous_reading: NonNegative
    current_reading: NonNegative
    total_kwh: NonNegative
    rate_per_kwh: NonNegative

    # Charges
    charges: Charges
    total_amount: NonNegative

    # Analytics
    monthly_consumption: tuple[MonthlyConsumption, ...]
    comparison_data: ComparisonData
    environmental_impact: EnvironmentalImpact
    high_usage_flag: bool

    @model_validator(mode="after")
    def _check_arithmetic(self) -> BillRecord:
        charge_sum = self.charges.total()
        if abs(self.total_amount - charge_sum) > SUM_TOLERANCE:
            raise ValueError(
                f"total_amount {self.total_amount} != sum of charges {charge_sum}"
            )
        if self.current_reading - self.previous_reading != self.total_kwh:
            raise ValueError(
                f"readings {self.current_reading} - {self.previous_reading} "
                f"!= total_kwh {self.total_kwh}"
            )
        if self.billing_period_start > self.billing_period_end:
            raise ValueError("billing_period_start is after billing_period_end")

        series = self.monthly_consumption
        if len(series) < 2:
            raise ValueError(f"monthly_consumption needs at least 2 entries, got {len(series)}")
        if series[0].consumption != self.total_kwh:
            raise ValueError("most recent monthly consumption must equal total_kwh")

        comparison = self.comparison_data
        if comparison.current_consumption != self.total_kwh:
            raise ValueError("comparison current consumption must equal total_kwh")
        if comparison.previous_consumption != series[1].consumption:
            raise ValueError("comparison previous consumption must equal the prior month")
        expected = percentage_change(comparison.current_consumption, comparison.previous_consumption)
        if comparison.percentage_change != expected:
            raise ValueError(
                f"percentage_change {comparison.percentage_change} != {expected}"
            )
        if self.environmental_impact.electricity_used_kwh != self.total_kwh:
            raise ValueError("environmental impact must be computed from total_kwh")
        return self
