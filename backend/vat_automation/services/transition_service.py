"""Transition Service - Move ended VAT quarters into paperwork chasing

Daily flow: find quarters still WAITING_FOR_QUARTER_END whose end date has
passed, move each to PAPERWORK_PENDING_CHASE with its audit records, then
notify partners about every quarter that moved.
"""
from datetime import datetime
from typing import Callable, ContextManager, List, Optional

from ..domain.models import (
    SYSTEM_ACTOR, RunError, TransitionCandidate, TransitionRunResult, VatQuarter
)
from ..domain.enums import ActivityAction, VatWorkflowStage
from ..domain.errors import INFRASTRUCTURE_ERRORS
from ..engine.audit_writer import AuditWriter
from ..engine.stage_rules import ensure_transition_allowed
from ..repositories.client_repo import ClientRepository
from ..repositories.mongo_client import unit_of_work
from ..repositories.vat_quarter_repo import VatQuarterRepository
from ..utils.time import BusinessCalendar, format_iso, format_short_date, get_business_calendar
from ..utils.logger import get_logger
from .notification_service import VatNotificationService

logger = get_logger(__name__)

UnitOfWork = Callable[[], ContextManager]


def attach_clients(
    quarters: List[VatQuarter],
    client_repo: ClientRepository
) -> List[TransitionCandidate]:
    """
    Join quarters with their clients' identity fields

    Quarters whose client record cannot be found are logged and dropped.
    """
    clients = client_repo.get_clients_by_ids(q.client_id for q in quarters)

    candidates = []
    for quarter in quarters:
        client = clients.get(quarter.client_id)
        if client is None:
            logger.warning(
                "VAT quarter references a missing client; ignoring",
                extra={"vat_quarter_id": quarter.vat_quarter_id, "client_id": quarter.client_id}
            )
            continue
        candidates.append(TransitionCandidate(
            quarter=quarter,
            client_id=client.client_id,
            client_code=client.client_code,
            company_name=client.company_name,
            client_email=client.email
        ))
    return candidates


class VatTransitionService:
    """Detector and transitioner for ended VAT quarters"""

    FROM_STAGE = VatWorkflowStage.WAITING_FOR_QUARTER_END
    TO_STAGE = VatWorkflowStage.PAPERWORK_PENDING_CHASE

    def __init__(
        self,
        quarter_repo: Optional[VatQuarterRepository] = None,
        client_repo: Optional[ClientRepository] = None,
        audit_writer: Optional[AuditWriter] = None,
        notifier: Optional[VatNotificationService] = None,
        calendar: Optional[BusinessCalendar] = None,
        unit_of_work_factory: Optional[UnitOfWork] = None
    ):
        self.quarter_repo = quarter_repo or VatQuarterRepository()
        self.client_repo = client_repo or ClientRepository()
        self.audit_writer = audit_writer or AuditWriter()
        self.calendar = calendar or get_business_calendar()
        self.notifier = notifier or VatNotificationService(calendar=self.calendar)
        self._unit_of_work = unit_of_work_factory or unit_of_work

    # =========================================================================
    # Detector
    # =========================================================================

    def find_transition_candidates(self, now: datetime) -> List[TransitionCandidate]:
        """
        Waiting, open quarters whose end date is strictly before ``now``

        Read-only. Ordered by end date, then quarter ID.
        """
        business_now = self.calendar.to_business_time(now)
        quarters = self.quarter_repo.find_waiting_ended_before(business_now)
        return attach_clients(quarters, self.client_repo)

    # =========================================================================
    # Transitioner
    # =========================================================================

    def transition(self, candidate: TransitionCandidate, transitioned_at: datetime) -> None:
        """
        Move one quarter to PAPERWORK_PENDING_CHASE with its history entry
        and activity log, all in one unit of work

        Raises:
            InvalidStageTransitionError: stage rules reject the move
            ConcurrencyError: the quarter left WAITING_FOR_QUARTER_END meanwhile
        """
        quarter = candidate.quarter
        ensure_transition_allowed(quarter.current_stage, self.TO_STAGE)
        end_date = self.calendar.to_business_time(quarter.quarter_end_date).date()

        with self._unit_of_work() as session:
            self.quarter_repo.update_stage(
                quarter.vat_quarter_id,
                from_stage=self.FROM_STAGE,
                to_stage=self.TO_STAGE,
                updated_at=transitioned_at,
                session=session
            )
            self.audit_writer.write_stage_change(
                vat_quarter_id=quarter.vat_quarter_id,
                from_stage=self.FROM_STAGE,
                to_stage=self.TO_STAGE,
                actor=SYSTEM_ACTOR,
                changed_at=transitioned_at,
                notes=(
                    "Automatically transitioned to pending chase - quarter end date "
                    f"({format_short_date(end_date)}) passed"
                ),
                session=session
            )
            self.audit_writer.write_activity(
                action=ActivityAction.VAT_QUARTER_AUTO_TRANSITIONED,
                vat_quarter_id=quarter.vat_quarter_id,
                timestamp=transitioned_at,
                client_id=candidate.client_id,
                details={
                    "vat_quarter_id": quarter.vat_quarter_id,
                    "client_id": candidate.client_id,
                    "client_code": candidate.client_code,
                    "company_name": candidate.company_name,
                    "quarter_period": quarter.quarter_period,
                    "quarter_group": quarter.quarter_group.value,
                    "quarter_end_date": end_date.isoformat(),
                    "transitioned_at": format_iso(transitioned_at),
                },
                session=session
            )

        logger.info(
            f"Transitioned {candidate.company_name} {quarter.quarter_period} to {self.TO_STAGE.value}",
            extra={
                "vat_quarter_id": quarter.vat_quarter_id,
                "client_code": candidate.client_code,
                "action": ActivityAction.VAT_QUARTER_AUTO_TRANSITIONED.value,
            }
        )

    # =========================================================================
    # Daily run
    # =========================================================================

    def check_vat_quarter_transitions(
        self,
        now: Optional[datetime] = None,
        notify: bool = True
    ) -> TransitionRunResult:
        """
        Detect, transition, then notify

        A failure on one quarter is recorded in ``errors`` and the run carries
        on. Store connectivity errors abort the run.
        """
        now = self.calendar.to_business_time(now) if now else self.calendar.now_in_business_timezone()
        candidates = self.find_transition_candidates(now)
        result = TransitionRunResult(candidates=len(candidates))

        logger.info(f"Found {len(candidates)} VAT quarters ready for transition")

        moved: List[TransitionCandidate] = []
        for candidate in candidates:
            try:
                self.transition(candidate, now)
            except INFRASTRUCTURE_ERRORS:
                raise
            except Exception as e:
                logger.error(
                    f"Failed to transition VAT quarter: {e}",
                    extra={"vat_quarter_id": candidate.vat_quarter_id, "client_code": candidate.client_code}
                )
                result.errors.append(RunError(
                    vat_quarter_id=candidate.vat_quarter_id,
                    client_id=candidate.client_id,
                    company_name=candidate.company_name,
                    error=str(e)
                ))
                continue
            moved.append(candidate)
            result.transitioned += 1
            result.transitioned_quarter_ids.append(candidate.vat_quarter_id)

        if notify:
            for candidate in moved:
                try:
                    outcome = self.notifier.notify_transition(candidate, now)
                except INFRASTRUCTURE_ERRORS:
                    raise
                except Exception as e:
                    logger.error(
                        f"Failed to notify partners about VAT quarter: {e}",
                        extra={"vat_quarter_id": candidate.vat_quarter_id, "client_code": candidate.client_code}
                    )
                    result.errors.append(RunError(
                        vat_quarter_id=candidate.vat_quarter_id,
                        client_id=candidate.client_id,
                        company_name=candidate.company_name,
                        error=f"Notification failed: {e}"
                    ))
                    continue
                result.emails_queued += outcome.notified
                if outcome:
                    result.notified += 1

        logger.info(
            f"Transition run complete: {result.transitioned}/{result.candidates} transitioned, "
            f"{result.notified} notified, {len(result.errors)} errors"
        )
        return result
