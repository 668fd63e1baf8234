"""
VAT Quarter Automation - Daily transition run

Moves quarters whose end date has passed from WAITING_FOR_QUARTER_END to
PAPERWORK_PENDING_CHASE and queues partner notifications.

Run:
    python -m scripts.vat_quarter_automation
    python -m scripts.vat_quarter_automation --auto-assign
"""
import argparse
import sys
import os
from typing import List, Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vat_automation.domain.models import DailyRunResult
from vat_automation.services.automation_service import VatAutomationService
from vat_automation.utils.logger import setup_logging, get_logger

logger = get_logger(__name__)


def print_summary(result: DailyRunResult) -> None:
    transitions = result.transitions
    print(f"\nRun {result.run_id}")
    print(f"  Candidates:    {transitions.candidates}")
    print(f"  Transitioned:  {transitions.transitioned}")
    print(f"  Notified:      {transitions.notified} ({transitions.emails_queued} emails queued)")
    for error in transitions.errors:
        print(f"  ! {error.company_name or error.vat_quarter_id}: {error.error}")

    assignment = result.assignment
    if assignment is None:
        return
    print(f"\n  Auto-assigned: {assignment.assigned}/{assignment.candidates}")
    if assignment.skipped_reason:
        print(f"  ({assignment.skipped_reason})")
    for detail in assignment.assignments:
        print(f"    {detail.company_name} ({detail.client_code}) -> {detail.assigned_user_name}")
    for error in assignment.errors:
        print(f"  ! {error.company_name or error.vat_quarter_id}: {error.error}")


def main(argv: Optional[List[str]] = None, service: Optional[VatAutomationService] = None) -> int:
    parser = argparse.ArgumentParser(description="Transition ended VAT quarters to pending chase")
    parser.add_argument(
        "--auto-assign",
        action="store_true",
        default=None,
        help="Auto-assign transitioned quarters to partners in rotation; defaults to the configured setting"
    )
    args = parser.parse_args(argv)

    try:
        service = service or VatAutomationService()
        result = service.run_daily(auto_assign=args.auto_assign)
    except Exception as e:
        logger.error(f"VAT quarter automation failed: {e}", exc_info=True)
        print(f"VAT quarter automation failed: {e}", file=sys.stderr)
        return 1

    print_summary(result)
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(main())
