"""Pass 2: Completion & reconciliation -- pure code, fills every gap left by Pass 1.

Each field group is resolved by an ordered tuple of strategies. A strategy is a
function of the completion state that returns the values it resolved (tagged
with how it resolved them) or ``None`` to defer to the next strategy:

    found in text -> derived from other fields -> contextual clue -> synthetic

Groups run in a fixed order because later groups (series, comparison,
environmental impact) read values fixed by earlier ones (kWh, rate, period).
"""
from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any

import structlog
from pydantic import ValidationError

from ..config import TariffConfig
from ..errors import BillInvariantError
from ..models.internal import CompletionResult, PartialBill, Resolution, ResolutionSource
from ..models.schema import (
    SUM_TOLERANCE,
    BillRecord,
    Charges,
    ChargeType,
    ComparisonData,
    EnvironmentalImpact,
    MonthlyConsumption,
    percentage_change,
)
from ..parsing.date_parsing import (
    MONTH_NAME_PATTERN,
    add_months,
    check_year,
    format_month_label,
    month_label_bounds,
    parse_month_label,
    short_month_label,
)
from ..parsing.number_parsing import quantize_money
from ..randomness import (
    RandomSource,
    SeededRandomSource,
    bounded_decimal,
    bounded_int,
    digit_string,
    pick,
)
from .pass3_validation import check_invariants, is_high_usage

logger = structlog.get_logger(__name__)

FOUND = ResolutionSource.FOUND
DERIVED = ResolutionSource.DERIVED
CONTEXTUAL = ResolutionSource.CONTEXTUAL
SYNTHESIZED = ResolutionSource.SYNTHESIZED

CENT = Decimal("0.01")
WHOLE = Decimal("1")

FIRST_NAMES = (
    "Juan", "Maria", "Jose", "Ana", "Carlos", "Liza", "Ramon", "Teresa", "Miguel", "Rosa",
)
LAST_NAMES = (
    "Dela Cruz", "Santos", "Reyes", "Garcia", "Mendoza",
    "Bautista", "Villanueva", "Ramos", "Aquino", "Castillo",
)
DEFAULT_CUSTOMER_TYPE = "Residential"
ACCOUNT_NUMBER_LENGTH = 10
METER_NUMBER_LENGTH = 8

# Most specific first; the first pattern with an acceptable candidate wins
_ACCOUNT_CONTEXT_PATTERNS = (
    re.compile(r"(?<![\d.,/-])\d{10}(?![\d.,/-])"),
    re.compile(r"(?<![\d.,/-])\d{7,12}(?![\d.,/-])"),
)
# Digit runs after these words on the same line are phone numbers
_PHONE_CONTEXT_RE = re.compile(r"\b(?:hotline|tel|telephone|phone|mobile|cell|fax|call|text|sms)\b", re.IGNORECASE)
_CUSTOMER_TYPE_RE = re.compile(r"\b(general\s+service|residential|commercial|industrial)\b", re.IGNORECASE)
_MONTH_YEAR_RE = re.compile(r"\b(" + MONTH_NAME_PATTERN + r")\.?,?\s+(\d{4})\b", re.IGNORECASE)
_BARE_MONTH_RE = re.compile(r"\b(" + MONTH_NAME_PATTERN + r")\b", re.IGNORECASE)


@dataclass
class CompletionState:
    """Inputs plus everything resolved so far."""

    partial: PartialBill
    raw_text: str
    tariff: TariffConfig
    rng: RandomSource
    today: date
    values: dict[str, Any] = field(default_factory=dict)
    provenance: dict[str, ResolutionSource] = field(default_factory=dict)


Resolved = dict[str, Resolution]
Strategy = Callable[[CompletionState], Resolved | None]


def _tag(value: Any, source: ResolutionSource) -> Resolution:
    return Resolution(value=value, source=source)


def resolve(state: CompletionState, group: str, strategies: tuple[Strategy, ...], required: bool = True) -> bool:
    """Apply the first strategy that resolves ``group``. Returns whether one did."""
    for strategy in strategies:
        resolved = strategy(state)
        if resolved is None:
            continue
        for name, resolution in resolved.items():
            state.values[name] = resolution.value
            state.provenance[name] = resolution.source
        logger.debug("pass2_group_resolved", group=group, strategy=strategy.__name__)
        return True
    if required:
        raise BillInvariantError(f"No strategy resolved {group}")
    return False


def _found(name: str) -> Strategy:
    def strategy(state: CompletionState) -> Resolved | None:
        value = getattr(state.partial, name)
        return None if value is None else {name: _tag(value, FOUND)}

    strategy.__name__ = f"found_{name}"
    return strategy


# ---------------------------------------------------------------------------
# 1. Readings and usage
# ---------------------------------------------------------------------------


def _plausible_kwh(state: CompletionState, kwh: Decimal | None) -> bool:
    return kwh is not None and kwh >= state.tariff.consumption_floor


def _synthetic_baseline(state: CompletionState) -> Decimal:
    t = state.tariff
    return Decimal(bounded_int(state.rng, t.reading_baseline_min, t.reading_baseline_max))


def _usage_from_readings(state: CompletionState) -> Resolved | None:
    p = state.partial
    if p.previous_reading is None or p.current_reading is None:
        return None
    kwh = p.current_reading - p.previous_reading
    if not _plausible_kwh(state, kwh):
        logger.warning(
            "pass2_readings_rejected",
            previous=str(p.previous_reading),
            current=str(p.current_reading),
        )
        return None
    return {
        "previous_reading": _tag(p.previous_reading, FOUND),
        "current_reading": _tag(p.current_reading, FOUND),
        "total_kwh": _tag(kwh, FOUND if p.total_kwh == kwh else DERIVED),
    }


def _usage_from_kwh_and_one_reading(state: CompletionState) -> Resolved | None:
    p = state.partial
    kwh = p.total_kwh
    if not _plausible_kwh(state, kwh):
        return None
    if p.previous_reading is not None:
        return {
            "previous_reading": _tag(p.previous_reading, FOUND),
            "current_reading": _tag(p.previous_reading + kwh, DERIVED),
            "total_kwh": _tag(kwh, FOUND),
        }
    if p.current_reading is not None and p.current_reading >= kwh:
        return {
            "previous_reading": _tag(p.current_reading - kwh, DERIVED),
            "current_reading": _tag(p.current_reading, FOUND),
            "total_kwh": _tag(kwh, FOUND),
        }
    return None


def _usage_from_kwh(state: CompletionState) -> Resolved | None:
    kwh = state.partial.total_kwh
    if not _plausible_kwh(state, kwh):
        return None
    previous = _synthetic_baseline(state)
    return {
        "previous_reading": _tag(previous, SYNTHESIZED),
        "current_reading": _tag(previous + kwh, DERIVED),
        "total_kwh": _tag(kwh, FOUND),
    }


def _log_overridden(name: str, found: Decimal | None, resolved: Decimal) -> None:
    if found is not None and found != resolved:
        logger.warning("pass2_found_value_overridden", field=name, found=str(found), resolved=str(resolved))


def _synthetic_usage(state: CompletionState) -> Resolved:
    p, t = state.partial, state.tariff
    kwh = Decimal(bounded_int(state.rng, t.kwh_min, t.kwh_max))
    if p.previous_reading is not None:
        previous = _tag(p.previous_reading, FOUND)
    elif p.current_reading is not None and p.current_reading >= kwh:
        previous = _tag(p.current_reading - kwh, DERIVED)
    else:
        previous = _tag(_synthetic_baseline(state), SYNTHESIZED)
    current = previous.value + kwh
    _log_overridden("current_reading", p.current_reading, current)
    _log_overridden("total_kwh", p.total_kwh, kwh)
    return {
        "previous_reading": previous,
        "current_reading": _tag(current, FOUND if p.current_reading == current else DERIVED),
        "total_kwh": _tag(kwh, SYNTHESIZED),
    }


USAGE_STRATEGIES: tuple[Strategy, ...] = (
    _usage_from_readings,
    _usage_from_kwh_and_one_reading,
    _usage_from_kwh,
    _synthetic_usage,
)


# ---------------------------------------------------------------------------
# 2. Rate
# ---------------------------------------------------------------------------


def _synthetic_rate(state: CompletionState) -> Resolved:
    t = state.tariff
    return {"rate_per_kwh": _tag(bounded_decimal(state.rng, t.rate_min, t.rate_max), SYNTHESIZED)}


RATE_STRATEGIES: tuple[Strategy, ...] = (_found("rate_per_kwh"), _synthetic_rate)


# ---------------------------------------------------------------------------
# 3. Charges
# ---------------------------------------------------------------------------


def allocate(
    amount: Decimal,
    shares: dict[ChargeType, Decimal],
    balancing: ChargeType,
) -> dict[ChargeType, Decimal]:
    """Split ``amount`` across ``shares`` (normalised) to the cent.

    Every charge except ``balancing`` is truncated to the cent; ``balancing``
    takes the remainder, so the parts always sum to ``amount`` exactly and are
    never negative for a non-negative ``amount``.
    """
    share_total = sum(shares.values(), Decimal("0"))
    allocated: dict[ChargeType, Decimal] = {}
    for charge, share in shares.items():
        if charge == balancing:
            continue
        portion = amount * share / share_total if share_total else Decimal("0")
        allocated[charge] = portion.quantize(CENT, rounding=ROUND_DOWN)
    allocated[balancing] = amount - sum(allocated.values(), Decimal("0"))
    return {charge: allocated[charge] for charge in shares}


def _balancing_charge(tariff: TariffConfig, missing: list[ChargeType]) -> ChargeType:
    if tariff.balancing_charge in missing:
        return tariff.balancing_charge
    return max(missing, key=tariff.share)


def _charge_resolutions(
    found: dict[ChargeType, Decimal],
    allocated: dict[ChargeType, Decimal],
) -> Resolved:
    resolved: Resolved = {}
    for charge in ChargeType:
        if charge in found:
            resolved[f"charges.{charge.value}"] = _tag(found[charge], FOUND)
        else:
            resolved[f"charges.{charge.value}"] = _tag(allocated[charge], DERIVED)
    return resolved


def _charges_from_total(state: CompletionState) -> Resolved | None:
    p, t = state.partial, state.tariff
    if p.total_amount is None:
        return None
    found = dict(p.charges)
    found_sum = sum(found.values(), Decimal("0"))
    missing = [charge for charge in ChargeType if charge not in found]
    total = p.total_amount

    if not missing:
        if abs(total - found_sum) > SUM_TOLERANCE:
            logger.warning("pass2_total_rederived", stated=str(total), charge_sum=str(found_sum))
            resolved = _charge_resolutions(found, {})
            resolved["total_amount"] = _tag(found_sum, DERIVED)
            return resolved
        resolved = _charge_resolutions(found, {})
        resolved["total_amount"] = _tag(total, FOUND)
        return resolved

    remaining = total - found_sum
    if remaining < 0:
        logger.warning("pass2_charges_exceed_total", stated=str(total), charge_sum=str(found_sum))
        resolved = _charge_resolutions(found, {charge: Decimal("0.00") for charge in missing})
        resolved["total_amount"] = _tag(found_sum, DERIVED)
        return resolved

    allocated = allocate(
        remaining,
        {charge: t.share(charge) for charge in missing},
        _balancing_charge(t, missing),
    )
    logger.info("pass2_charges_allocated", basis="total_amount", missing=[c.value for c in missing])
    resolved = _charge_resolutions(found, allocated)
    resolved["total_amount"] = _tag(total, FOUND)
    return resolved


def _charges_from_usage(state: CompletionState) -> Resolved:
    p, t = state.partial, state.tariff
    base = quantize_money(state.values["total_kwh"] * state.values["rate_per_kwh"])
    found = dict(p.charges)
    missing = [charge for charge in ChargeType if charge not in found]
    allocated: dict[ChargeType, Decimal] = {}
    if missing:
        shares = {charge: t.share(charge) for charge in missing}
        target = quantize_money(base * sum(shares.values(), Decimal("0")))
        allocated = allocate(target, shares, _balancing_charge(t, missing))
    logger.info("pass2_charges_allocated", basis="kwh_x_rate", base=str(base), missing=[c.value for c in missing])
    resolved = _charge_resolutions(found, allocated)
    charge_sum = sum((r.value for r in resolved.values()), Decimal("0"))
    resolved["total_amount"] = _tag(charge_sum, DERIVED)
    return resolved


CHARGE_STRATEGIES: tuple[Strategy, ...] = (_charges_from_total, _charges_from_usage)


# ---------------------------------------------------------------------------
# 4. Identity and dates
# ---------------------------------------------------------------------------


def _known_digit_runs(state: CompletionState) -> set[str]:
    """Digit strings already accounted for by other fields."""
    known: set[str] = set()
    for name in ("previous_reading", "current_reading", "total_kwh"):
        value = state.values.get(name)
        if value is not None and value == value.to_integral_value():
            known.add(str(int(value)))
    meter = state.values.get("meter_number")
    if meter:
        known.add(meter)
    return known


def _is_compact_date(run: str) -> bool:
    """True for 8-digit runs that read as YYYYMMDD, MMDDYYYY or DDMMYYYY."""
    if len(run) != 8:
        return False
    shapes = ((run[:4], run[4:6], run[6:]), (run[4:], run[:2], run[2:4]), (run[4:], run[2:4], run[:2]))
    for year, month, day in shapes:
        try:
            check_year(date(int(year), int(month), int(day)).year)
        except ValueError:
            continue
        return True
    return False


def _contextual_account_number(state: CompletionState) -> Resolved | None:
    known = _known_digit_runs(state)
    for pattern in _ACCOUNT_CONTEXT_PATTERNS:
        for match in pattern.finditer(state.raw_text):
            run = match.group(0)
            if run in known or _is_compact_date(run):
                continue
            line_start = state.raw_text.rfind("\n", 0, match.start()) + 1
            if _PHONE_CONTEXT_RE.search(state.raw_text, line_start, match.start()):
                continue
            return {"account_number": _tag(run, CONTEXTUAL)}
    return None


def _synthetic_account_number(state: CompletionState) -> Resolved:
    return {"account_number": _tag(digit_string(state.rng, ACCOUNT_NUMBER_LENGTH), SYNTHESIZED)}


def _synthetic_customer_name(state: CompletionState) -> Resolved:
    name = f"{pick(state.rng, FIRST_NAMES)} {pick(state.rng, LAST_NAMES)}"
    return {"customer_name": _tag(name, SYNTHESIZED)}


def _contextual_customer_type(state: CompletionState) -> Resolved | None:
    match = _CUSTOMER_TYPE_RE.search(state.raw_text)
    if not match:
        return None
    return {"customer_type": _tag(" ".join(match.group(1).split()).title(), CONTEXTUAL)}


def _default_customer_type(state: CompletionState) -> Resolved:
    return {"customer_type": _tag(DEFAULT_CUSTOMER_TYPE, SYNTHESIZED)}


def _synthetic_meter_number(state: CompletionState) -> Resolved:
    return {"meter_number": _tag(digit_string(state.rng, METER_NUMBER_LENGTH), SYNTHESIZED)}


def _contextual_billing_month(state: CompletionState) -> Resolved | None:
    for match in _MONTH_YEAR_RE.finditer(state.raw_text):
        try:
            return {"billing_month": _tag(parse_month_label(match.group(0)), CONTEXTUAL)}
        except ValueError:
            continue
    p = state.partial
    default_year = (p.billing_period_end or p.due_date or state.today).year
    for match in _BARE_MONTH_RE.finditer(state.raw_text):
        # lowercase "may"/"march" is more likely prose than a month
        if match.group(1).islower():
            continue
        try:
            return {"billing_month": _tag(parse_month_label(match.group(1), default_year), CONTEXTUAL)}
        except ValueError:
            continue
    return None


def _found_period(state: CompletionState) -> Resolved | None:
    p = state.partial
    if p.billing_period_start is None or p.billing_period_end is None:
        return None
    if p.billing_period_start > p.billing_period_end:
        return None
    return {
        "billing_period_start": _tag(p.billing_period_start, FOUND),
        "billing_period_end": _tag(p.billing_period_end, FOUND),
    }


def _period_from_one_end(state: CompletionState) -> Resolved | None:
    p = state.partial
    if p.billing_period_start is not None:
        return {
            "billing_period_start": _tag(p.billing_period_start, FOUND),
            "billing_period_end": _tag(add_months(p.billing_period_start, 1), DERIVED),
        }
    if p.billing_period_end is not None:
        return {
            "billing_period_start": _tag(add_months(p.billing_period_end, -1), DERIVED),
            "billing_period_end": _tag(p.billing_period_end, FOUND),
        }
    return None


def _period_from_billing_month(state: CompletionState) -> Resolved | None:
    label = state.values.get("billing_month")
    if label is None:
        return None
    try:
        start, end = month_label_bounds(label)
    except ValueError:
        return None
    return {
        "billing_period_start": _tag(start, DERIVED),
        "billing_period_end": _tag(end, DERIVED),
    }


def _period_from_due_date(state: CompletionState) -> Resolved | None:
    due = state.partial.due_date
    if due is None:
        return None
    end = due - timedelta(days=state.tariff.due_days)
    return {
        "billing_period_start": _tag(add_months(end, -1), DERIVED),
        "billing_period_end": _tag(end, DERIVED),
    }


def _synthetic_period(state: CompletionState) -> Resolved:
    return {
        "billing_period_start": _tag(add_months(state.today, -1), SYNTHESIZED),
        "billing_period_end": _tag(state.today, SYNTHESIZED),
    }


def _billing_month_from_period(state: CompletionState) -> Resolved:
    end = state.values["billing_period_end"]
    source = SYNTHESIZED if state.provenance["billing_period_end"] == SYNTHESIZED else DERIVED
    return {"billing_month": _tag(format_month_label(end), source)}


def _due_date_from_period(state: CompletionState) -> Resolved:
    due = state.values["billing_period_end"] + timedelta(days=state.tariff.due_days)
    source = SYNTHESIZED if state.provenance["billing_period_end"] == SYNTHESIZED else DERIVED
    return {"due_date": _tag(due, source)}


IDENTITY_STRATEGIES: dict[str, tuple[Strategy, ...]] = {
    "meter_number": (_found("meter_number"), _synthetic_meter_number),
    "account_number": (_found("account_number"), _contextual_account_number, _synthetic_account_number),
    "customer_name": (_found("customer_name"), _synthetic_customer_name),
    "customer_type": (_found("customer_type"), _contextual_customer_type, _default_customer_type),
}
BILLING_MONTH_STRATEGIES: tuple[Strategy, ...] = (_found("billing_month"), _contextual_billing_month)
PERIOD_STRATEGIES: tuple[Strategy, ...] = (
    _found_period,
    _period_from_one_end,
    _period_from_billing_month,
    _period_from_due_date,
    _synthetic_period,
)
DUE_DATE_STRATEGIES: tuple[Strategy, ...] = (_found("due_date"), _due_date_from_period)


# ---------------------------------------------------------------------------
# 5. Monthly consumption series
# ---------------------------------------------------------------------------


def _series_anchor(state: CompletionState) -> date:
    try:
        return month_label_bounds(state.values["billing_month"])[1]
    except ValueError:
        return state.values["billing_period_end"]


def _found_series(state: CompletionState) -> Resolved | None:
    series = state.partial.monthly_consumption
    t = state.tariff
    if not series:
        return None
    if len(series) < t.series_length:
        logger.info("pass2_series_too_short", entries=len(series), required=t.series_length)
        return None
    kwh = state.values["total_kwh"]
    entries = list(series[: t.series_length])
    repaired = [entries[0].model_copy(update={"consumption": kwh})]
    for entry in entries[1:]:
        if entry.consumption < t.consumption_floor:
            entry = entry.model_copy(update={"consumption": t.consumption_floor})
        repaired.append(entry)
    source = FOUND if repaired == list(series) else DERIVED
    return {"monthly_consumption": _tag(tuple(repaired), source)}


def _synthetic_series(state: CompletionState) -> Resolved:
    t = state.tariff
    kwh = state.values["total_kwh"]
    anchor = _series_anchor(state)
    anchor_factor = t.seasonal_profile[anchor.month]
    entries = [MonthlyConsumption(month=short_month_label(anchor.year, anchor.month), consumption=kwh)]
    for step in range(1, t.series_length):
        year, month_index = divmod(anchor.year * 12 + anchor.month - 1 - step, 12)
        month = month_index + 1
        noise = Decimal(str(round(state.rng.next_bounded(-t.noise_ratio, t.noise_ratio), 4)))
        estimate = kwh * t.seasonal_profile[month] / anchor_factor * (1 + noise)
        consumption = max(t.consumption_floor, estimate.quantize(WHOLE, rounding=ROUND_HALF_UP))
        entries.append(MonthlyConsumption(month=short_month_label(year, month), consumption=consumption))
    return {"monthly_consumption": _tag(tuple(entries), SYNTHESIZED)}


SERIES_STRATEGIES: tuple[Strategy, ...] = (_found_series, _synthetic_series)


# ---------------------------------------------------------------------------
# 6-8. Derived analytics
# ---------------------------------------------------------------------------


def build_comparison(series: tuple[MonthlyConsumption, ...]) -> ComparisonData:
    current, previous = series[0], series[1]
    return ComparisonData(
        current_consumption=current.consumption,
        previous_consumption=previous.consumption,
        percentage_change=percentage_change(current.consumption, previous.consumption),
        compared_to=previous.month,
    )


def build_environmental_impact(kwh: Decimal, tariff: TariffConfig) -> EnvironmentalImpact:
    emissions = kwh * tariff.emission_factor
    return EnvironmentalImpact(
        electricity_used_kwh=kwh,
        ghg_emissions_tons=emissions,
        offset_trees=math.ceil(emissions * tariff.trees_per_ton),
    )


# ---------------------------------------------------------------------------
# 9. Next reading date
# ---------------------------------------------------------------------------


def _next_reading_from_period(state: CompletionState) -> Resolved | None:
    if state.provenance["billing_period_end"] == SYNTHESIZED:
        return None
    return {"next_reading_date": _tag(add_months(state.values["billing_period_end"], 1), DERIVED)}


def _next_reading_from_today(state: CompletionState) -> Resolved:
    return {"next_reading_date": _tag(add_months(state.today, 1), SYNTHESIZED)}


NEXT_READING_STRATEGIES: tuple[Strategy, ...] = (
    _found("next_reading_date"),
    _next_reading_from_period,
    _next_reading_from_today,
)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def complete_bill(
    partial: PartialBill,
    raw_text: str = "",
    *,
    tariff: TariffConfig | None = None,
    rng: RandomSource | None = None,
    today: date | None = None,
) -> CompletionResult:
    """Resolve every field of ``partial`` and return an invariant-checked record.

    Never fails for missing data; raises ``BillInvariantError`` only if the
    assembled record breaks an invariant, which indicates a defect here.
    """
    state = CompletionState(
        partial=partial,
        raw_text=raw_text or "",
        tariff=tariff or TariffConfig(),
        rng=rng or SeededRandomSource(),
        today=today or date.today(),
    )

    resolve(state, "usage", USAGE_STRATEGIES)
    resolve(state, "rate", RATE_STRATEGIES)
    resolve(state, "charges", CHARGE_STRATEGIES)
    for name, strategies in IDENTITY_STRATEGIES.items():
        resolve(state, name, strategies)
    resolve(state, "billing_month", BILLING_MONTH_STRATEGIES, required=False)
    resolve(state, "billing_period", PERIOD_STRATEGIES)
    if "billing_month" not in state.values:
        resolve(state, "billing_month", (_billing_month_from_period,))
    resolve(state, "due_date", DUE_DATE_STRATEGIES)
    resolve(state, "monthly_consumption", SERIES_STRATEGIES)
    resolve(state, "next_reading_date", NEXT_READING_STRATEGIES)

    v = state.values
    series = v["monthly_consumption"]
    comparison = build_comparison(series)
    high_usage = is_high_usage(comparison.percentage_change, state.tariff.high_usage_threshold)
    for name in ("comparison_data", "environmental_impact", "high_usage_flag"):
        state.provenance[name] = DERIVED

    try:
        record = BillRecord(
            account_number=v["account_number"],
            customer_name=v["customer_name"],
            customer_type=v["customer_type"],
            meter_number=v["meter_number"],
            billing_month=v["billing_month"],
            due_date=v["due_date"],
            billing_period_start=v["billing_period_start"],
            billing_period_end=v["billing_period_end"],
            next_reading_date=v["next_reading_date"],
            previous_reading=v["previous_reading"],
            current_reading=v["current_reading"],
            total_kwh=v["total_kwh"],
            rate_per_kwh=v["rate_per_kwh"],
            charges=Charges(**{charge.value: v[f"charges.{charge.value}"] for charge in ChargeType}),
            total_amount=v["total_amount"],
            monthly_consumption=series,
            comparison_data=comparison,
            environmental_impact=build_environmental_impact(v["total_kwh"], state.tariff),
            high_usage_flag=high_usage,
        )
    except ValidationError as e:
        logger.error("pass2_record_invalid", error=str(e))
        raise BillInvariantError(f"Completed record failed validation: {e}") from e

    issues = [issue for issue in check_invariants(record, state.tariff) if issue.severity == "fatal"]
    if issues:
        logger.error("pass2_invariant_violation", issues=[i.message for i in issues])
        raise BillInvariantError("; ".join(i.message for i in issues), issues=issues)

    logger.info(
        "pass2_complete",
        found=len([s for s in state.provenance.values() if s == FOUND]),
        synthesized=len([s for s in state.provenance.values() if s == SYNTHESIZED]),
        total_kwh=str(record.total_kwh),
        total_amount=str(record.total_amount),
        high_usage=record.high_usage_flag,
    )
    return CompletionResult(record=record, provenance=dict(state.provenance))
