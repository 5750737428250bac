"""Internal inter-pass data models.

These models carry data between pipeline passes. ``PartialBill`` is the sparse
output of extraction; the completion pass turns it into a ``BillRecord``.
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from bill_analyzer.models.schema import (
    BillRecord,
    ChargeType,
    MonthlyConsumption,
    NonNegative,
    SuggestionImpact,
)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Pass 0 – Ingestion
# ---------------------------------------------------------------------------


class PageImage(BaseModel):
    """A single page ready for OCR, with any text embedded in the source file."""

    page_number: int
    image_bytes: bytes
    embedded_text: str | None = None


class IngestionResult(BaseModel):
    """Output of Pass 0 (input checks and page rendering)."""

    file_hash: str
    file_type: str
    pages: list[PageImage]


# ---------------------------------------------------------------------------
# Pass 1 – Field extraction
# ---------------------------------------------------------------------------


class PartialBill(BaseModel):
    """A sparse bill: ``None`` (or a missing charge key) means "not found"."""

    account_number: str | None = None
    customer_name: str | None = None
    customer_type: str | None = None
    meter_number: str | None = None

    billing_month: str | None = None
    due_date: date | None = None
    billing_period_start: date | None = None
    billing_period_end: date | None = None
    next_reading_date: date | None = None

    previous_reading: NonNegative | None = None
    current_reading: NonNegative | None = None
    total_kwh: NonNegative | None = None
    rate_per_kwh: NonNegative | None = None

    charges: dict[ChargeType, NonNegative] = Field(default_factory=dict)
    total_amount: NonNegative | None = None

    monthly_consumption: list[MonthlyConsumption] | None = None

    def present_fields(self) -> list[str]:
        """Names of the fields that hold a value, charges as ``charges.<type>``."""
        present = [
            name
            for name, value in self
            if name != "charges" and value is not None
        ]
        present.extend(f"charges.{charge.value}" for charge in ChargeType if charge in self.charges)
        return present

    def is_empty(self) -> bool:
        return not self.present_fields()

    @classmethod
    def from_record(cls, record: BillRecord) -> PartialBill:
        """Sparse view of a complete record holding every primary field."""
        return cls(
            account_number=record.account_number,
            customer_name=record.customer_name,
            customer_type=record.customer_type,
            meter_number=record.meter_number,
            billing_month=record.billing_month,
            due_date=record.due_date,
            billing_period_start=record.billing_period_start,
            billing_period_end=record.billing_period_end,
            next_reading_date=record.next_reading_date,
            previous_reading=record.previous_reading,
            current_reading=record.current_reading,
            total_kwh=record.total_kwh,
            rate_per_kwh=record.rate_per_kwh,
            charges=record.charges.as_dict(),
            total_amount=record.total_amount,
            monthly_consumption=list(record.monthly_consumption),
        )


# ---------------------------------------------------------------------------
# Pass 2 – Completion
# ---------------------------------------------------------------------------


class ResolutionSource(StrEnum):
    """How a field obtained its final value."""

    FOUND = "found"
    DERIVED = "derived"
    CONTEXTUAL = "contextual"
    SYNTHESIZED = "synthesized"


class Resolution(BaseModel, Generic[T]):
    """A resolved value tagged with the strategy that produced it."""

    value: T
    source: ResolutionSource


class CompletionResult(BaseModel):
    """Output of Pass 2: the complete record and per-field provenance."""

    record: BillRecord
    provenance: dict[str, ResolutionSource] = Field(default_factory=dict)

    def fields_from(self, source: ResolutionSource) -> list[str]:
        return [name for name, src in self.provenance.items() if src == source]


# ---------------------------------------------------------------------------
# Pass 3 – Validation
# ---------------------------------------------------------------------------


class ValidationIssue(BaseModel):
    """A single problem discovered in Pass 3."""

    field: str
    severity: str  # "fatal", "warning", "info"
    message: str
    expected: str | None = None
    actual: str | None = None


class Pass3Result(BaseModel):
    """Aggregate validation output from Pass 3."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_fatal(self) -> bool:
        return any(issue.severity == "fatal" for issue in self.issues)


# ---------------------------------------------------------------------------
# Suggestions and pipeline output
# ---------------------------------------------------------------------------


class Suggestion(BaseModel):
    title: str
    description: str
    impact: SuggestionImpact


class BillAnalysis(BaseModel):
    """Everything the pipeline hands back for one uploaded bill."""

    record: BillRecord
    provenance: dict[str, ResolutionSource] = Field(default_factory=dict)
    issues: list[ValidationIssue] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)
    file_hash: str | None = None

    def fields_from(self, source: ResolutionSource) -> list[str]:
        return [name for name, src in self.provenance.items() if src == source]

    def to_response(self) -> dict[str, Any]:
        """JSON-ready payload with camelCase record keys."""
        return {
            "record": self.record.model_dump(mode="json", by_alias=True),
            "provenance": {name: source.value for name, source in self.provenance.items()},
            "issues": [issue.model_dump(mode="json") for issue in self.issues],
            "suggestions": [s.model_dump(mode="json") for s in self.suggestions],
            "fileHash": self.file_hash,
        }
