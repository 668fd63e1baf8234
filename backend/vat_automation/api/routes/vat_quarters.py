"""
VAT Quarter Automation Routes

Cron-triggered endpoints:
- Monthly quarter creation (plus a deterministic test variant)
- Daily transition run
- Auto-assignment run
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import get_automation_service, require_non_production, verify_automation_token
from ...domain.errors import DomainError, ValidationError
from ...domain.models import AssignmentRunResult, DailyRunResult, QuarterCreationResult
from ...services.automation_service import VatAutomationService
from ...utils.time import parse_iso
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


def _parse_simulated_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parse_iso(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid simulatedDate '{value}'",
            details={"expected_format": "YYYY-MM-DD"}
        ) from e


@router.get(
    "/auto-create",
    response_model=QuarterCreationResult,
    dependencies=[Depends(verify_automation_token)]
)
def auto_create_quarters(
    service: VatAutomationService = Depends(get_automation_service)
):
    """
    Create the quarters that ended last month.

    Does nothing unless today (business timezone) is the creation day.
    """
    try:
        return service.run_monthly()
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get(
    "/auto-create-test",
    response_model=QuarterCreationResult,
    dependencies=[Depends(require_non_production)]
)
def auto_create_quarters_test(
    simulated_date: Optional[str] = Query(None, alias="simulatedDate"),
    skip_emails: bool = Query(False, alias="skipEmails"),
    service: VatAutomationService = Depends(get_automation_service)
):
    """
    Run quarter creation as if today were ``simulatedDate``.

    Unavailable in production. ``skipEmails`` creates quarters without
    queuing creation emails.
    """
    try:
        reference = _parse_simulated_date(simulated_date)
        logger.info(f"Test quarter creation for {simulated_date or 'today'} (skip_emails={skip_emails})")
        return service.run_monthly(reference=reference, skip_emails=skip_emails)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post(
    "/transitions",
    response_model=DailyRunResult,
    dependencies=[Depends(verify_automation_token)]
)
def run_transitions(
    auto_assign: Optional[bool] = Query(None, alias="autoAssign"),
    service: VatAutomationService = Depends(get_automation_service)
):
    """Move ended quarters to PAPERWORK_PENDING_CHASE and notify partners."""
    try:
        return service.run_daily(auto_assign=auto_assign)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post(
    "/auto-assign",
    response_model=AssignmentRunResult,
    dependencies=[Depends(verify_automation_token)]
)
def run_auto_assign(
    service: VatAutomationService = Depends(get_automation_service)
):
    """Assign unassigned quarters awaiting a chase to partners in rotation."""
    try:
        return service.run_auto_assign()
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
