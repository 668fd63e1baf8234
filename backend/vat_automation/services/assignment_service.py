"""Assignment Service - Round-robin auto-assignment of chased quarters"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from ..domain.models import (
    AssignmentDetail, AssignmentRunResult, RunError, TransitionCandidate, User
)
from ..domain.enums import ActivityAction, VatWorkflowStage
from ..domain.errors import INFRASTRUCTURE_ERRORS
from ..engine.audit_writer import AuditWriter
from ..repositories.client_repo import ClientRepository
from ..repositories.mongo_client import unit_of_work
from ..repositories.user_repo import UserRepository
from ..repositories.vat_quarter_repo import VatQuarterRepository
from ..utils.time import BusinessCalendar, format_iso, get_business_calendar
from ..utils.logger import get_logger
from .notification_service import VatNotificationService
from .transition_service import UnitOfWork, attach_clients

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssignmentCursor:
    """Position in the partner rotation; each run starts a fresh one"""
    index: int = 0

    def pick(self, partners: Sequence[User]) -> User:
        return partners[self.index % len(partners)]

    def advance(self) -> "AssignmentCursor":
        return AssignmentCursor(self.index + 1)


class AutoAssignmentService:
    """Hand unassigned PAPERWORK_PENDING_CHASE quarters to active partners"""

    def __init__(
        self,
        quarter_repo: Optional[VatQuarterRepository] = None,
        client_repo: Optional[ClientRepository] = None,
        user_repo: Optional[UserRepository] = None,
        audit_writer: Optional[AuditWriter] = None,
        notifier: Optional[VatNotificationService] = None,
        calendar: Optional[BusinessCalendar] = None,
        unit_of_work_factory: Optional[UnitOfWork] = None
    ):
        self.quarter_repo = quarter_repo or VatQuarterRepository()
        self.client_repo = client_repo or ClientRepository()
        self.user_repo = user_repo or UserRepository()
        self.audit_writer = audit_writer or AuditWriter()
        self.calendar = calendar or get_business_calendar()
        self.notifier = notifier or VatNotificationService(user_repo=self.user_repo, calendar=self.calendar)
        self._unit_of_work = unit_of_work_factory or unit_of_work

    def find_assignment_candidates(self) -> List[TransitionCandidate]:
        """Unassigned open quarters awaiting a chase, oldest end date first"""
        quarters = self.quarter_repo.find_unassigned_pending_chase()
        return attach_clients(quarters, self.client_repo)

    def assign(self, candidate: TransitionCandidate, partner: User, assigned_at: datetime) -> None:
        """
        Assign one quarter with its history entry and activity log

        Raises:
            ConcurrencyError: somebody assigned the quarter meanwhile
        """
        quarter = candidate.quarter
        with self._unit_of_work() as session:
            self.quarter_repo.assign_if_unassigned(
                quarter.vat_quarter_id, partner, assigned_at, session=session
            )
            self.audit_writer.write_stage_change(
                vat_quarter_id=quarter.vat_quarter_id,
                from_stage=None,
                to_stage=VatWorkflowStage.PAPERWORK_PENDING_CHASE,
                actor=partner.to_actor(),
                changed_at=assigned_at,
                notes="Auto-assigned to Partner after quarter end transition",
                session=session
            )
            self.audit_writer.write_activity(
                action=ActivityAction.VAT_QUARTER_AUTO_ASSIGNED_POST_TRANSITION,
                vat_quarter_id=quarter.vat_quarter_id,
                timestamp=assigned_at,
                client_id=candidate.client_id,
                user_id=partner.user_id,
                details={
                    "vat_quarter_id": quarter.vat_quarter_id,
                    "client_id": candidate.client_id,
                    "client_code": candidate.client_code,
                    "company_name": candidate.company_name,
                    "quarter_period": quarter.quarter_period,
                    "assigned_user_id": partner.user_id,
                    "assigned_user_name": partner.name,
                    "assigned_at": format_iso(assigned_at),
                    "auto_assigned_after_transition": True,
                },
                session=session
            )

    def auto_assign(self, now: Optional[datetime] = None) -> AssignmentRunResult:
        """
        Assign every candidate, rotating through the partner pool

        The cursor advances after every attempt, whether or not the
        assignment succeeded.
        """
        now = self.calendar.to_business_time(now) if now else self.calendar.now_in_business_timezone()
        candidates = self.find_assignment_candidates()
        result = AssignmentRunResult(candidates=len(candidates))
        if not candidates:
            logger.info("No unassigned VAT quarters awaiting a chase")
            return result

        partners = self.user_repo.get_active_partners()
        result.partners = len(partners)
        if not partners:
            result.skipped_reason = "No active partners available for auto-assignment"
            logger.warning(result.skipped_reason)
            return result

        cursor = AssignmentCursor()
        for candidate in candidates:
            partner = cursor.pick(partners)
            cursor = cursor.advance()
            try:
                self.assign(candidate, partner, now)
            except INFRASTRUCTURE_ERRORS:
                raise
            except Exception as e:
                logger.error(
                    f"Failed to auto-assign VAT quarter to {partner.name}: {e}",
                    extra={"vat_quarter_id": candidate.vat_quarter_id, "user_id": partner.user_id}
                )
                result.errors.append(RunError(
                    vat_quarter_id=candidate.vat_quarter_id,
                    client_id=candidate.client_id,
                    company_name=candidate.company_name,
                    error=str(e)
                ))
                continue

            result.assigned += 1
            result.assignments.append(AssignmentDetail(
                vat_quarter_id=candidate.vat_quarter_id,
                client_code=candidate.client_code,
                company_name=candidate.company_name,
                assigned_user_id=partner.user_id,
                assigned_user_name=partner.name
            ))
            logger.info(
                f"Auto-assigned {candidate.company_name} to {partner.name}",
                extra={
                    "vat_quarter_id": candidate.vat_quarter_id,
                    "user_id": partner.user_id,
                    "action": ActivityAction.VAT_QUARTER_AUTO_ASSIGNED_POST_TRANSITION.value,
                }
            )

            try:
                self.notifier.enqueue_assignment(partner, candidate, now)
                result.emails_queued += 1
            except INFRASTRUCTURE_ERRORS:
                raise
            except Exception as e:
                logger.error(
                    f"Failed to queue assignment email: {e}",
                    extra={"vat_quarter_id": candidate.vat_quarter_id, "user_id": partner.user_id}
                )

        logger.info(
            f"Auto-assignment complete: {result.assigned}/{result.candidates} assigned "
            f"across {result.partners} partners"
        )
        return result
