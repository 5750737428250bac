"""Energy-saving suggestions generated from a completed bill.

Reads the record as-is: percentages and totals come from the record, never
re-derived here.
"""
from __future__ import annotations

from decimal import Decimal

from ..config import TariffConfig
from ..models.internal import Suggestion
from ..models.schema import BillRecord, ChargeType, SuggestionImpact

ABOVE_AVERAGE_RATIO = Decimal("1.2")
MIN_SUGGESTIONS = 3


def generate_suggestions(record: BillRecord, tariff: TariffConfig | None = None) -> list[Suggestion]:
    """Return suggestions ordered from most to least specific."""
    tariff = tariff or TariffConfig()
    suggestions: list[Suggestion] = []

    if record.high_usage_flag:
        change = record.comparison_data.percentage_change
        suggestions.append(Suggestion(
            title="Significant usage increase detected",
            description=(
                f"Your electricity consumption has increased by {change:.1f}% compared to "
                f"{record.comparison_data.compared_to}. Consider checking for appliances that "
                "might be malfunctioning or using more power."
            ),
            impact=SuggestionImpact.HIGH,
        ))

    series = record.monthly_consumption
    average = sum((entry.consumption for entry in series), Decimal("0")) / len(series)
    if record.total_kwh > average * ABOVE_AVERAGE_RATIO:
        suggestions.append(Suggestion(
            title="Above average consumption",
            description=(
                "Your consumption is higher than your typical average. This might be due to "
                "seasonal changes or new appliances."
            ),
            impact=SuggestionImpact.MEDIUM,
        ))

    generation_share = tariff.share(ChargeType.GENERATION) * 100
    if record.total_amount > 0:
        generation_ratio = record.charges.generation / record.total_amount * 100
        if generation_ratio > generation_share:
            suggestions.append(Suggestion(
                title="High generation charges",
                description=(
                    "Your generation charges are particularly high this month. Consider using "
                    "heavy appliances during off-peak hours."
                ),
                impact=SuggestionImpact.MEDIUM,
            ))

    suggestions.append(Suggestion(
        title="Energy saving tips",
        description=(
            "Consider switching to LED bulbs, unplugging devices when not in use, and setting "
            "your air conditioner to 25°C for optimal efficiency."
        ),
        impact=SuggestionImpact.LOW,
    ))

    if len(suggestions) < MIN_SUGGESTIONS:
        suggestions.append(Suggestion(
            title="Regular appliance maintenance",
            description=(
                "Regularly clean air conditioner filters and defrost your refrigerator to "
                "maintain optimal efficiency."
            ),
            impact=SuggestionImpact.MEDIUM,
        ))
        suggestions.append(Suggestion(
            title="Consider energy audit",
            description=(
                "A professional energy audit can identify specific areas where you can save "
                "on electricity costs."
            ),
            impact=SuggestionImpact.MEDIUM,
        ))

    return suggestions
