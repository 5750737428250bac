#!/usr/bin/env python3
"""Process a bill image or PDF through the analysis pipeline."""
import asyncio
import json
import sys
from pathlib import Path

# Load .env file
from dotenv import load_dotenv
load_dotenv()

from bill_analyzer.config import Settings
from bill_analyzer.errors import BillAnalyzerError
from bill_analyzer.models.internal import ResolutionSource
from bill_analyzer.pipeline import BillAnalysisPipeline
from bill_analyzer.utils.logging import setup_logging


async def main(bill_path: str) -> None:
    """Process a single bill and print the result."""
    path = Path(bill_path)
    if not path.exists():
        print(f"Error: File not found: {bill_path}")
        sys.exit(1)

    settings = Settings()
    setup_logging(settings.log_level, json_output=False)

    print(f"Processing: {path.name}")
    print("-" * 50)

    pipeline = BillAnalysisPipeline(settings)
    file_bytes = path.read_bytes()
    print(f"File size: {len(file_bytes):,} bytes")

    try:
        analysis = await pipeline.process(file_bytes, path.name)
    except BillAnalyzerError as e:
        print(f"Error: {e.user_message} ({e.detail})")
        sys.exit(1)

    record = analysis.record
    print(f"\nAccount: {record.account_number}")
    print(f"Customer: {record.customer_name} ({record.customer_type})")
    print(f"Billing month: {record.billing_month}")
    print(f"Period: {record.billing_period_start} to {record.billing_period_end}")
    print(f"Usage: {record.total_kwh} kWh at {record.rate_per_kwh}/kWh")
    print(f"Total amount: {record.total_amount}")
    print(f"Change vs {record.comparison_data.compared_to}: {record.comparison_data.percentage_change:.2f}%")
    if record.high_usage_flag:
        print("High usage detected")

    for source in (ResolutionSource.DERIVED, ResolutionSource.CONTEXTUAL, ResolutionSource.SYNTHESIZED):
        fields = analysis.fields_from(source)
        if fields:
            print(f"{source.value.capitalize()}: {', '.join(fields)}")

    for issue in analysis.issues:
        print(f"[{issue.severity}] {issue.field}: {issue.message}")

    print("\nSuggestions:")
    for suggestion in analysis.suggestions:
        print(f"  - [{suggestion.impact}] {suggestion.title}")

    # Save full result
    output_path = path.with_suffix(".json")
    output_path.write_text(json.dumps(analysis.to_response(), indent=2))
    print(f"\nFull result saved to: {output_path}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/process_bill.py <path-to-bill>")
        sys.exit(1)

    asyncio.run(main(sys.argv[1]))
