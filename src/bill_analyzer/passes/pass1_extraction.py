"""Pass 1: Field extraction -- labelled regex rules over OCR text, no inference."""
from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

import structlog

from ..models.internal import PartialBill
from ..models.schema import ChargeType
from ..parsing.date_parsing import (
    DATE_TOKEN_PATTERN,
    parse_date,
    parse_month_label,
    validate_billing_period,
)
from ..parsing.number_parsing import parse_non_negative

logger = structlog.get_logger(__name__)

_FLAGS = re.IGNORECASE | re.MULTILINE

# Optional parenthetical after a label, e.g. "Consumption (kWh)"
_LABEL_SUFFIX = r"(?:[ \t]*\([^)\n]{0,15}\))?"
# Separator between label and value; the value may sit on the next line
_SEP = r"[ \t]*(?:[:=#–-][ \t]*)?(?:\n[ \t]*)?"

# Words that end a free-text value on a shared line
_TERMINATORS = (
    r"total|due|meter|account|acct|customer|billing|period|reading|amount|rate|date|name"
)

_NUMBER = (
    r"(?P<value>(?:₱|PHP|P(?=[ \t]*\d)|\$)?[ \t]*\d[\d,]*(?:\.\d+)?)"
    r"(?![\d/]|[.,]\d|[ \t]*/[ \t]*kwh)"
)
# "<rate> /kWh" printed between a charge label and its amount
_RATE_PREFIX = r"(?:\d[\d,]*(?:\.\d+)?[ \t]*/[ \t]*kwh[ \t]+)?"
_STRING = r"(?P<value>[^\n]+?)(?=[ \t]+(?:" + _TERMINATORS + r")\b|[ \t]*$)"
_IDENTIFIER = r"(?P<value>[A-Z0-9][A-Z0-9-]*(?: \d{2,}[A-Z0-9-]*)*)(?![A-Za-z0-9])"
_DATE = r"(?P<value>" + DATE_TOKEN_PATTERN + r")"
_DATE_RANGE = (
    r"(?P<start>" + DATE_TOKEN_PATTERN + r")"
    r"[ \t]*(?:to|through|thru|–|-)[ \t]*"
    r"(?P<end>" + DATE_TOKEN_PATTERN + r")"
)


@dataclass(frozen=True)
class FieldRule:
    """Ordered labelled patterns for one field, strongest label first."""

    field: str
    patterns: tuple[re.Pattern[str], ...]
    parse: Callable[[re.Match[str]], Any]


def _compile(labels: tuple[str, ...], value: str) -> tuple[re.Pattern[str], ...]:
    return tuple(
        re.compile(
            r"(?<![A-Za-z])(?:" + label + r")(?![A-Za-z])" + _LABEL_SUFFIX + _SEP + value,
            _FLAGS,
        )
        for label in labels
    )


# ---------------------------------------------------------------------------
# Value parsers -- raise ValueError when the token is not a usable value
# ---------------------------------------------------------------------------


def _parse_number(match: re.Match[str]) -> Decimal:
    return parse_non_negative(match.group("value"))


def _parse_identifier(match: re.Match[str]) -> str:
    value = match.group("value").replace(" ", "").upper().strip("-")
    if len(value) < 4 or not any(ch.isdigit() for ch in value):
        raise ValueError(f"Not an identifier: {value!r}")
    return value


def _parse_text(match: re.Match[str]) -> str:
    value = match.group("value").strip(" \t.,:;-|")
    if not value or not any(ch.isalpha() for ch in value) or len(value) > 80:
        raise ValueError(f"Not a text value: {value!r}")
    return value


def _parse_name(match: re.Match[str]) -> str:
    value = _parse_text(match)
    if sum(ch.isdigit() for ch in value) > 2:
        raise ValueError(f"Not a name: {value!r}")
    return value


def _parse_customer_type(match: re.Match[str]) -> str:
    value = _parse_text(match)
    if not re.fullmatch(r"[A-Za-z][A-Za-z /&-]*", value):
        raise ValueError(f"Not a customer type: {value!r}")
    return value.title()


def _parse_month(match: re.Match[str]) -> str:
    return parse_month_label(match.group("value"))


def _parse_date_value(match: re.Match[str]) -> date:
    return parse_date(match.group("value"))


def _parse_period(match: re.Match[str]) -> tuple[date, date]:
    start = parse_date(match.group("start"))
    end = parse_date(match.group("end"))
    is_valid, message = validate_billing_period(start, end)
    if not is_valid:
        raise ValueError(message)
    return start, end


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

_CHARGE_LABELS: dict[ChargeType, tuple[str, ...]] = {
    ChargeType.GENERATION: (r"generation(?:\s+charges?)?",),
    ChargeType.TRANSMISSION: (r"transmission(?:\s+charges?)?",),
    ChargeType.SYSTEM_LOSS: (r"system\s+loss(?:\s+charges?)?",),
    ChargeType.DISTRIBUTION: (r"distribution(?:\s+charges?)?",),
    ChargeType.SUBSIDY: (r"(?:lifeline\s+|senior\s+citizen\s+)?subsid(?:y|ies)(?:\s+charges?)?",),
    ChargeType.GOVERNMENT_TAXES: (
        r"government\s+tax(?:es)?",
        r"gov'?t\.?\s+tax(?:es)?",
        r"taxes",
    ),
    ChargeType.UNIVERSAL: (r"universal\s+charges?",),
    ChargeType.FEED_IN_TARIFF: (
        r"feed[\s-]*in[\s-]*tariff(?:\s+allowance)?(?:\s*\(fit-all\))?",
        r"fit[\s-]*all",
    ),
    ChargeType.OTHER: (r"other\s+charges?",),
}

FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        "account_number",
        _compile(
            (
                r"customer\s+account\s+(?:number|no\.?)",
                r"account\s+(?:number|no\.?|num\.?|#)",
                r"acct\.?\s*(?:number|no\.?|#)",
                r"can",
            ),
            _IDENTIFIER,
        ),
        _parse_identifier,
    ),
    FieldRule(
        "customer_name",
        _compile(
            (r"customer\s+name", r"account\s+name", r"name\s+of\s+customer", r"name"),
            _STRING,
        ),
        _parse_name,
    ),
    FieldRule(
        "customer_type",
        _compile(
            (
                r"customer\s+(?:type|class)",
                r"rate\s+(?:type|schedule|class)",
                r"service\s+type",
            ),
            _STRING,
        ),
        _parse_customer_type,
    ),
    FieldRule(
        "meter_number",
        _compile(
            (r"meter\s+(?:number|no\.?|serial(?:\s+no\.?)?|#)", r"serial\s+no\.?"),
            _IDENTIFIER,
        ),
        _parse_identifier,
    ),
    FieldRule(
        "billing_month",
        _compile(
            (
                r"billing\s+month",
                r"bill\s+month",
                r"statement\s+month",
                r"for\s+the\s+month\s+of",
                r"billing\s+for",
            ),
            _STRING,
        ),
        _parse_month,
    ),
    FieldRule(
        "due_date",
        _compile(
            (
                r"due\s+date",
                r"payment\s+due(?:\s+date)?",
                r"(?:please\s+)?pay\s+(?:on\s+or\s+)?(?:before|by)",
                r"due\s+on",
            ),
            _DATE,
        ),
        _parse_date_value,
    ),
    FieldRule(
        "billing_period",
        _compile(
            (
                r"billing\s+period",
                r"period\s+covered",
                r"service\s+period",
                r"billing\s+from",
                r"period",
            ),
            _DATE_RANGE,
        ),
        _parse_period,
    ),
    FieldRule(
        "next_reading_date",
        _compile(
            (
                r"next\s+meter\s+reading(?:\s+date)?",
                r"next\s+reading(?:\s+date)?",
                r"next\s+read(?:ing)?\s+(?:on|date)",
            ),
            _DATE,
        ),
        _parse_date_value,
    ),
    FieldRule(
        "previous_reading",
        _compile(
            (
                r"previous\s+(?:meter\s+)?reading",
                r"prev\.?\s*(?:meter\s+)?(?:reading|rdg|read)",
                r"last\s+reading",
            ),
            _NUMBER,
        ),
        _parse_number,
    ),
    FieldRule(
        "current_reading",
        _compile(
            (
                r"present\s+(?:meter\s+)?reading",
                r"current\s+(?:meter\s+)?reading",
                r"pres\.?\s*(?:rdg|read)",
                r"curr?\.?\s*(?:rdg|read)",
            ),
            _NUMBER,
        ),
        _parse_number,
    ),
    FieldRule(
        "total_kwh",
        _compile(
            (
                r"total\s+kwh(?:\s+(?:used|consumed))?",
                r"kwh\s+(?:consumed|used|consumption)",
                r"total\s+(?:energy\s+)?consumption",
                r"energy\s+consumed",
                r"consumption",
                r"(?<!per )(?<!/)kwh",
            ),
            _NUMBER,
        ),
        _parse_number,
    ),
    FieldRule(
        "rate_per_kwh",
        _compile(
            (
                r"rate\s+per\s+kwh",
                r"rate\s*/\s*kwh",
                r"(?:average|effective)\s+rate",
                r"price\s+per\s+kwh",
                r"rate",
            ),
            _NUMBER,
        ),
        _parse_number,
    ),
    FieldRule(
        "total_amount",
        _compile(
            (
                r"total\s+amount\s+due",
                r"total\s+current\s+amount",
                r"amount\s+due",
                r"total\s+amount",
                r"total\s+bill(?:\s+amount)?",
                r"total\s+due",
                r"total",
            ),
            _NUMBER,
        ),
        _parse_number,
    ),
    *(
        FieldRule(f"charges.{charge.value}", _compile(labels, _RATE_PREFIX + _NUMBER), _parse_number)
        for charge, labels in _CHARGE_LABELS.items()
    ),
)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def normalize_text(raw_text: str) -> str:
    """Unicode-normalise OCR text, drop control characters, collapse blanks per line."""
    text = unicodedata.normalize("NFKC", raw_text)
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    text = "".join(ch for ch in text if ch == "\n" or ch.isprintable())
    lines = [re.sub(r"\s+", " ", line).strip() for line in text.split("\n")]
    return "\n".join(lines)


def apply_rule(rule: FieldRule, text: str) -> Any | None:
    """Return the first parseable value for ``rule``; ``None`` when nothing parses."""
    for pattern in rule.patterns:
        for match in pattern.finditer(text):
            try:
                return rule.parse(match)
            except (ValueError, ArithmeticError):
                logger.debug("pass1_value_rejected", field=rule.field, token=match.group(0)[:60])
    return None


def extract_fields(raw_text: str | None) -> PartialBill:
    """Run every field rule over ``raw_text`` and return the sparse record."""
    text = normalize_text(raw_text or "")
    values: dict[str, Any] = {}
    charges: dict[ChargeType, Decimal] = {}

    for rule in FIELD_RULES:
        value = apply_rule(rule, text)
        if value is None:
            continue
        if rule.field.startswith("charges."):
            charges[ChargeType(rule.field.removeprefix("charges."))] = value
        elif rule.field == "billing_period":
            values["billing_period_start"], values["billing_period_end"] = value
        else:
            values[rule.field] = value

    partial = PartialBill(**values, charges=charges)
    found = partial.present_fields()
    logger.info(
        "pass1_complete",
        text_length=len(text),
        found_count=len(found),
        found=found,
    )
    return partial
