"""Quarter Creation Service - Monthly creation of the next VAT quarter

Runs on the configured day of the month. For each VAT-enabled client whose
quarter group ended a quarter last month, creates that quarter in
WAITING_FOR_QUARTER_END unless the client already has it.
"""
from datetime import date, datetime
from typing import List, Optional

from ..domain.models import (
    SYSTEM_ACTOR, Client, QuarterCreationDetail, QuarterCreationResult, RunError,
    User, VatQuarter
)
from ..domain.enums import ActivityAction, CreationAction, QuarterGroup, VatWorkflowStage
from ..domain.errors import INFRASTRUCTURE_ERRORS, AlreadyExistsError
from ..engine.audit_writer import AuditWriter
from ..engine.period_calculator import (
    compute_period, format_quarter_period_for_display, groups_creating_in_month, parse_quarter_group
)
from ..repositories.client_repo import ClientRepository
from ..repositories.mongo_client import unit_of_work
from ..repositories.user_repo import UserRepository
from ..repositories.vat_quarter_repo import VatQuarterRepository
from ..config.settings import settings
from ..utils.idgen import generate_vat_quarter_id
from ..utils.time import BusinessCalendar, format_iso, get_business_calendar
from ..utils.logger import get_logger
from .notification_service import VatNotificationService
from .transition_service import UnitOfWork

logger = get_logger(__name__)

UNASSIGNED = "Unassigned"


class QuarterCreationService:
    """Idempotent monthly creation of VAT quarters"""

    def __init__(
        self,
        quarter_repo: Optional[VatQuarterRepository] = None,
        client_repo: Optional[ClientRepository] = None,
        user_repo: Optional[UserRepository] = None,
        audit_writer: Optional[AuditWriter] = None,
        notifier: Optional[VatNotificationService] = None,
        calendar: Optional[BusinessCalendar] = None,
        unit_of_work_factory: Optional[UnitOfWork] = None,
        creation_day: Optional[int] = None,
        carry_forward_assignee: Optional[bool] = None
    ):
        self.quarter_repo = quarter_repo or VatQuarterRepository()
        self.client_repo = client_repo or ClientRepository()
        self.user_repo = user_repo or UserRepository()
        self.audit_writer = audit_writer or AuditWriter()
        self.calendar = calendar or get_business_calendar()
        self.notifier = notifier or VatNotificationService(user_repo=self.user_repo, calendar=self.calendar)
        self._unit_of_work = unit_of_work_factory or unit_of_work
        self.creation_day = creation_day if creation_day is not None else settings.quarter_creation_day
        self.carry_forward_assignee = (
            carry_forward_assignee if carry_forward_assignee is not None else settings.carry_forward_assignee
        )

    def auto_create_quarters(
        self,
        reference: Optional[datetime] = None,
        skip_emails: bool = False
    ) -> QuarterCreationResult:
        """
        Create last month's quarters for all eligible clients

        Args:
            reference: Date to evaluate as "today"; defaults to now. Naive
                values are read as business-local time.
            skip_emails: Create quarters without queuing any email

        Returns:
            QuarterCreationResult; on any day other than the creation day
            nothing is evaluated and ``gated_reason`` says why
        """
        reference = (
            self.calendar.to_business_time(reference) if reference
            else self.calendar.now_in_business_timezone()
        )
        reference_date = reference.date()
        result = QuarterCreationResult(reference_date=reference_date, skip_emails=skip_emails)

        if reference_date.day != self.creation_day:
            result.gated_reason = (
                f"Quarters are only created on day {self.creation_day} of the month; "
                f"{reference_date.isoformat()} is not"
            )
            logger.info(result.gated_reason)
            return result

        creating = groups_creating_in_month(reference_date.month)
        if not creating:
            result.gated_reason = f"No quarter group creates quarters in {reference_date.strftime('%B')}"
            logger.info(result.gated_reason)
            return result

        previous_month_end = self.calendar.last_day_of_previous_month(reference_date)
        clients = self.client_repo.get_vat_enabled_clients()
        logger.info(
            f"Evaluating {len(clients)} VAT clients for quarters ending {previous_month_end.isoformat()}"
        )

        for client in clients:
            result.processed += 1
            try:
                detail = self._process_client(client, creating, previous_month_end, skip_emails)
            except INFRASTRUCTURE_ERRORS:
                raise
            except Exception as e:
                logger.error(
                    f"Failed to create VAT quarter for {client.company_name}: {e}",
                    extra={"client_id": client.client_id, "client_code": client.client_code}
                )
                result.errors.append(RunError(
                    client_id=client.client_id,
                    company_name=client.company_name,
                    error=str(e)
                ))
                continue

            result.quarter_details.append(detail)
            if detail.action == CreationAction.CREATED:
                result.created += 1
                if detail.notified:
                    result.emails_sent += 1
            else:
                result.skipped += 1

        logger.info(
            f"Quarter creation complete: {result.created} created, {result.skipped} skipped, "
            f"{len(result.errors)} errors, {result.emails_sent} emails"
        )
        return result

    # =========================================================================
    # Per client
    # =========================================================================

    def _skip(self, client: Client, reason: str, quarter_period: Optional[str] = None) -> QuarterCreationDetail:
        logger.debug(
            f"Skipping {client.company_name}: {reason}",
            extra={"client_id": client.client_id, "quarter_period": quarter_period}
        )
        return QuarterCreationDetail(
            client_id=client.client_id,
            company_name=client.company_name,
            client_code=client.client_code,
            action=CreationAction.SKIPPED,
            quarter_period=quarter_period,
            reason=reason
        )

    def _previous_assignee(self, client_id: str) -> Optional[User]:
        user_id = self.quarter_repo.get_last_assigned_user_id(client_id)
        if not user_id:
            return None
        user = self.user_repo.get_user(user_id)
        if user is None or not user.is_active:
            return None
        return user

    def _process_client(
        self,
        client: Client,
        creating: List[QuarterGroup],
        previous_month_end: date,
        skip_emails: bool
    ) -> QuarterCreationDetail:
        group = parse_quarter_group(client.vat_quarter_group)
        if group is None:
            return self._skip(client, f"Unrecognised VAT quarter group '{client.vat_quarter_group}'")

        if group not in creating:
            return self._skip(client, "No quarter ended last month for this quarter group")

        info = compute_period(group, previous_month_end)
        start = self.calendar.start_of_day(info.start_date)
        end = self.calendar.start_of_day(info.end_date)

        existing = self.quarter_repo.find_existing_quarter(client.client_id, info.quarter_period, start, end)
        if existing is not None:
            return self._skip(client, f"Quarter already exists: {existing.quarter_period}", info.quarter_period)

        previous_assignee = self._previous_assignee(client.client_id)
        assignee = previous_assignee if self.carry_forward_assignee else None
        now = self.calendar.now_in_business_timezone()

        quarter = VatQuarter(
            vat_quarter_id=generate_vat_quarter_id(),
            client_id=client.client_id,
            quarter_period=info.quarter_period,
            quarter_start_date=start,
            quarter_end_date=end,
            filing_due_date=self.calendar.start_of_day(info.filing_due_date),
            quarter_group=group,
            current_stage=VatWorkflowStage.WAITING_FOR_QUARTER_END,
            is_completed=False,
            assigned_user_id=assignee.user_id if assignee else None,
            created_at=now,
            updated_at=now
        )

        try:
            with self._unit_of_work() as session:
                self.quarter_repo.create_quarter(quarter, session=session)
                self.audit_writer.write_stage_change(
                    vat_quarter_id=quarter.vat_quarter_id,
                    from_stage=None,
                    to_stage=VatWorkflowStage.WAITING_FOR_QUARTER_END,
                    actor=SYSTEM_ACTOR,
                    changed_at=now,
                    notes=(
                        "Quarter automatically created for "
                        f"{format_quarter_period_for_display(info.quarter_period)}"
                    ),
                    session=session
                )
                self.audit_writer.write_activity(
                    action=ActivityAction.VAT_QUARTER_AUTO_CREATED,
                    vat_quarter_id=quarter.vat_quarter_id,
                    timestamp=now,
                    client_id=client.client_id,
                    user_id=assignee.user_id if assignee else None,
                    details={
                        "vat_quarter_id": quarter.vat_quarter_id,
                        "client_id": client.client_id,
                        "client_code": client.client_code,
                        "company_name": client.company_name,
                        "quarter_period": info.quarter_period,
                        "quarter_group": group.value,
                        "quarter_end_date": info.end_date.isoformat(),
                        "filing_due_date": info.filing_due_date.isoformat(),
                        "assigned_user_id": assignee.user_id if assignee else None,
                        "created_at": format_iso(now),
                    },
                    session=session
                )
        except AlreadyExistsError:
            return self._skip(client, f"Quarter already exists: {info.quarter_period}", info.quarter_period)

        assigned_to = assignee.name if assignee else UNASSIGNED
        detail = QuarterCreationDetail(
            client_id=client.client_id,
            company_name=client.company_name,
            client_code=client.client_code,
            action=CreationAction.CREATED,
            quarter_period=info.quarter_period,
            assigned_to=assigned_to
        )
        logger.info(
            f"Created VAT quarter {info.quarter_period} for {client.company_name}",
            extra={
                "vat_quarter_id": quarter.vat_quarter_id,
                "client_code": client.client_code,
                "action": ActivityAction.VAT_QUARTER_AUTO_CREATED.value,
            }
        )

        if skip_emails or previous_assignee is None:
            return detail

        try:
            self.notifier.enqueue_creation(previous_assignee, quarter, client, now, assigned_to=assigned_to)
            detail.notified = previous_assignee.name
        except INFRASTRUCTURE_ERRORS:
            raise
        except Exception as e:
            logger.error(
                f"Failed to queue creation email: {e}",
                extra={"vat_quarter_id": quarter.vat_quarter_id, "user_id": previous_assignee.user_id}
            )
            detail.reason = f"Creation email not queued: {e}"
        return detail
