"""Automation Service - Entry point shared by the CLI, HTTP routes and scheduler"""
from datetime import datetime
from typing import Optional

from ..domain.models import AssignmentRunResult, DailyRunResult, QuarterCreationResult
from ..config.settings import settings
from ..utils.idgen import generate_run_id
from ..utils.logger import get_logger, set_correlation_id
from .assignment_service import AutoAssignmentService
from .quarter_creation_service import QuarterCreationService
from .transition_service import VatTransitionService

logger = get_logger(__name__)


class VatAutomationService:
    """Runs the daily and monthly VAT jobs, each under its own run ID"""

    def __init__(
        self,
        transition_service: Optional[VatTransitionService] = None,
        assignment_service: Optional[AutoAssignmentService] = None,
        creation_service: Optional[QuarterCreationService] = None
    ):
        self.transition_service = transition_service or VatTransitionService()
        self.assignment_service = assignment_service or AutoAssignmentService()
        self.creation_service = creation_service or QuarterCreationService()

    def _start_run(self, job: str) -> str:
        run_id = generate_run_id()
        set_correlation_id(run_id)
        logger.info(f"Starting {job}", extra={"run_id": run_id})
        return run_id

    def run_daily(
        self,
        now: Optional[datetime] = None,
        auto_assign: Optional[bool] = None
    ) -> DailyRunResult:
        """
        Transition ended quarters, then optionally auto-assign them

        Args:
            now: Evaluation instant; defaults to the current time
            auto_assign: Chain the auto-assigner; defaults to the
                ``auto_assign_after_transition`` setting
        """
        run_id = self._start_run("daily VAT transition run")
        if auto_assign is None:
            auto_assign = settings.auto_assign_after_transition

        transitions = self.transition_service.check_vat_quarter_transitions(now=now)
        transitions.run_id = run_id

        assignment = None
        if auto_assign:
            assignment = self.assignment_service.auto_assign(now=now)
            assignment.run_id = run_id

        return DailyRunResult(run_id=run_id, transitions=transitions, assignment=assignment)

    def run_auto_assign(self, now: Optional[datetime] = None) -> AssignmentRunResult:
        """Auto-assign on its own"""
        run_id = self._start_run("VAT auto-assignment run")
        result = self.assignment_service.auto_assign(now=now)
        result.run_id = run_id
        return result

    def run_monthly(
        self,
        reference: Optional[datetime] = None,
        skip_emails: bool = False
    ) -> QuarterCreationResult:
        """Create the quarters that ended last month"""
        run_id = self._start_run("monthly VAT quarter creation run")
        result = self.creation_service.auto_create_quarters(reference=reference, skip_emails=skip_emails)
        result.run_id = run_id
        return result
