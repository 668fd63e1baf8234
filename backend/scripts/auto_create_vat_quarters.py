"""
Auto-create VAT quarters - Monthly creation run

Only does work on the creation day (the 1st by default) in the business
timezone. Pass --simulated-date to evaluate another day.

Run:
    python -m scripts.auto_create_vat_quarters
    python -m scripts.auto_create_vat_quarters --simulated-date 2024-05-01 --skip-emails
"""
import argparse
import sys
import os
from typing import List, Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vat_automation.domain.models import QuarterCreationResult
from vat_automation.services.automation_service import VatAutomationService
from vat_automation.utils.time import parse_iso
from vat_automation.utils.logger import setup_logging, get_logger

logger = get_logger(__name__)


def print_summary(result: QuarterCreationResult) -> None:
    print(f"\nQuarter creation for {result.reference_date.isoformat()} (run {result.run_id})")
    if result.gated_reason:
        print(f"  {result.gated_reason}")
        return
    print(f"  Processed:   {result.processed}")
    print(f"  Created:     {result.created}")
    print(f"  Skipped:     {result.skipped}")
    print(f"  Emails sent: {result.emails_sent}{' (emails skipped)' if result.skip_emails else ''}")
    for detail in result.quarter_details:
        line = f"    {detail.action.value:<8} {detail.company_name}"
        if detail.quarter_period:
            line += f" {detail.quarter_period}"
        if detail.reason:
            line += f" - {detail.reason}"
        print(line)
    for error in result.errors:
        print(f"  ! {error.company_name}: {error.error}")


def main(argv: Optional[List[str]] = None, service: Optional[VatAutomationService] = None) -> int:
    parser = argparse.ArgumentParser(description="Create the VAT quarters that ended last month")
    parser.add_argument(
        "--simulated-date",
        type=str,
        default=None,
        help="Evaluate as if today were this date (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--skip-emails",
        action="store_true",
        help="Create quarters without queuing creation emails"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON"
    )
    args = parser.parse_args(argv)

    try:
        reference = parse_iso(args.simulated_date) if args.simulated_date else None
    except ValueError:
        print(f"Invalid --simulated-date '{args.simulated_date}', expected YYYY-MM-DD", file=sys.stderr)
        return 2

    try:
        service = service or VatAutomationService()
        result = service.run_monthly(reference=reference, skip_emails=args.skip_emails)
    except Exception as e:
        logger.error(f"VAT quarter creation failed: {e}", exc_info=True)
        print(f"VAT quarter creation failed: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        print_summary(result)
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(main())
