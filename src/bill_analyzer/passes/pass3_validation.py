"""Pass 3: Deterministic validation -- invariant closure plus plausibility checks."""
from __future__ import annotations

import math
from decimal import Decimal

import structlog

from ..config import TariffConfig
from ..models.internal import Pass3Result, ValidationIssue
from ..models.schema import SUM_TOLERANCE, BillRecord, percentage_change
from ..parsing.date_parsing import validate_billing_period

logger = structlog.get_logger(__name__)


def is_high_usage(change: Decimal, threshold: Decimal) -> bool:
    """Strictly above the threshold; a change exactly at it is not high usage."""
    return change > threshold


def validate_charges(record: BillRecord) -> list[ValidationIssue]:
    """Validate: sum of the nine charges == total amount."""
    charge_sum = record.charges.total()
    if abs(charge_sum - record.total_amount) > SUM_TOLERANCE:
        return [ValidationIssue(
            field="total_amount",
            severity="fatal",
            message=f"Total mismatch: sum of charges {charge_sum}, stated {record.total_amount}",
            expected=str(charge_sum),
            actual=str(record.total_amount),
        )]
    return []


def validate_readings(record: BillRecord) -> list[ValidationIssue]:
    """Validate meter reads -> consumption."""
    diff = record.current_reading - record.previous_reading
    if diff != record.total_kwh:
        return [ValidationIssue(
            field="total_kwh",
            severity="fatal",
            message=f"Read diff: {record.current_reading}-{record.previous_reading}={diff}, stated={record.total_kwh}",
            expected=str(diff),
            actual=str(record.total_kwh),
        )]
    return []


def validate_series(record: BillRecord, tariff: TariffConfig) -> list[ValidationIssue]:
    """Validate the consumption history shape, floor and head."""
    issues: list[ValidationIssue] = []
    series = record.monthly_consumption
    if len(series) != tariff.series_length:
        issues.append(ValidationIssue(
            field="monthly_consumption",
            severity="fatal",
            message=f"Series has {len(series)} entries, expected {tariff.series_length}",
        ))
    below = [entry.month for entry in series if entry.consumption < tariff.consumption_floor]
    if below:
        issues.append(ValidationIssue(
            field="monthly_consumption",
            severity="fatal",
            message=f"Consumption below floor {tariff.consumption_floor} for {', '.join(below)}",
        ))
    if series and series[0].consumption != record.total_kwh:
        issues.append(ValidationIssue(
            field="monthly_consumption.0",
            severity="fatal",
            message="Most recent month does not match total kWh",
            expected=str(record.total_kwh),
            actual=str(series[0].consumption),
        ))
    return issues


def validate_analytics(record: BillRecord, tariff: TariffConfig) -> list[ValidationIssue]:
    """Validate comparison, high-usage flag and environmental impact."""
    issues: list[ValidationIssue] = []
    comparison = record.comparison_data
    expected_change = percentage_change(comparison.current_consumption, comparison.previous_consumption)
    if comparison.percentage_change != expected_change:
        issues.append(ValidationIssue(
            field="comparison_data.percentage_change",
            severity="fatal",
            message="Percentage change does not match consumption values",
            expected=str(expected_change),
            actual=str(comparison.percentage_change),
        ))

    expected_flag = is_high_usage(comparison.percentage_change, tariff.high_usage_threshold)
    if record.high_usage_flag != expected_flag:
        issues.append(ValidationIssue(
            field="high_usage_flag",
            severity="fatal",
            message=f"High usage flag must be {expected_flag} for change {comparison.percentage_change}%",
        ))

    impact = record.environmental_impact
    expected_emissions = record.total_kwh * tariff.emission_factor
    if impact.ghg_emissions_tons != expected_emissions:
        issues.append(ValidationIssue(
            field="environmental_impact.ghg_emissions_tons",
            severity="fatal",
            message="Emissions do not match kWh x emission factor",
            expected=str(expected_emissions),
            actual=str(impact.ghg_emissions_tons),
        ))
    expected_trees = math.ceil(impact.ghg_emissions_tons * tariff.trees_per_ton)
    if impact.offset_trees != expected_trees:
        issues.append(ValidationIssue(
            field="environmental_impact.offset_trees",
            severity="fatal",
            message="Offset trees do not match emissions x trees per ton",
            expected=str(expected_trees),
            actual=str(impact.offset_trees),
        ))
    return issues


def check_invariants(record: BillRecord, tariff: TariffConfig) -> list[ValidationIssue]:
    """Every structural invariant; any issue returned here is fatal."""
    issues: list[ValidationIssue] = []
    issues.extend(validate_charges(record))
    issues.extend(validate_readings(record))
    issues.extend(validate_series(record, tariff))
    issues.extend(validate_analytics(record, tariff))
    return issues


def validate_plausibility(record: BillRecord, tariff: TariffConfig) -> list[ValidationIssue]:
    """Advisory checks on values that are consistent but unusual."""
    issues: list[ValidationIssue] = []

    _, message = validate_billing_period(record.billing_period_start, record.billing_period_end)
    if message:
        issues.append(ValidationIssue(
            field="billing_period",
            severity="warning",
            message=message,
        ))

    rate = record.rate_per_kwh
    if rate > Decimal(str(tariff.rate_max)) * 2 or rate < Decimal(str(tariff.rate_min)) / 2:
        issues.append(ValidationIssue(
            field="rate_per_kwh",
            severity="warning",
            message=f"Unusual rate per kWh: {rate}",
        ))

    if record.due_date < record.billing_period_end:
        issues.append(ValidationIssue(
            field="due_date",
            severity="info",
            message=f"Due date {record.due_date} precedes billing period end {record.billing_period_end}",
        ))
    return issues


def run_pass3(record: BillRecord, tariff: TariffConfig) -> Pass3Result:
    """Run all validation checks."""
    issues = check_invariants(record, tariff)
    issues.extend(validate_plausibility(record, tariff))
    result = Pass3Result(issues=issues)
    logger.info(
        "pass3_complete",
        issue_count=len(issues),
        fatal=result.has_fatal,
    )
    return result
