"""Notification Service - Queue VAT automation emails

Emails are written to the email log with status PENDING; a separate
delivery worker sends them. Nothing here talks to a mail server.
"""
from datetime import date, datetime
from typing import Optional

from ..domain.models import (
    SYSTEM_ACTOR, Client, EmailLogEntry, NotificationResult, RunError,
    TransitionCandidate, User, VatQuarter
)
from ..domain.enums import EmailStatus, EmailType
from ..domain.errors import INFRASTRUCTURE_ERRORS
from ..repositories.email_log_repo import EmailLogRepository
from ..repositories.user_repo import UserRepository
from ..templates.email_templates import (
    ComposedEmail, compose_assignment_email, compose_creation_email, compose_transition_email
)
from ..config.settings import settings
from ..utils.idgen import generate_email_log_id
from ..utils.time import BusinessCalendar, get_business_calendar, utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class VatNotificationService:
    """Compose and queue emails about VAT quarter events"""

    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        email_repo: Optional[EmailLogRepository] = None,
        calendar: Optional[BusinessCalendar] = None
    ):
        self.user_repo = user_repo or UserRepository()
        self.email_repo = email_repo or EmailLogRepository()
        self.calendar = calendar or get_business_calendar()

    def _business_date(self, moment: datetime) -> date:
        return self.calendar.to_business_time(moment).date()

    def _queue(
        self,
        recipient_email: str,
        recipient_name: str,
        composed: ComposedEmail,
        email_type: EmailType,
        client_id: str,
        vat_quarter_id: str,
        triggered_by: str
    ) -> EmailLogEntry:
        now = utc_now()
        email_log = EmailLogEntry(
            email_log_id=generate_email_log_id(),
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            from_email=settings.notification_from_email,
            from_name=settings.notification_from_name,
            subject=composed.subject,
            content=composed.body,
            email_type=email_type,
            status=EmailStatus.PENDING,
            client_id=client_id,
            workflow_type="VAT",
            workflow_id=vat_quarter_id,
            triggered_by=triggered_by,
            created_at=now,
            updated_at=now
        )
        return self.email_repo.create_email_log(email_log)

    # =========================================================================
    # Transition
    # =========================================================================

    def notify_transition(
        self,
        candidate: TransitionCandidate,
        transitioned_at: datetime
    ) -> NotificationResult:
        """
        Queue one transition email per partner who wants email notifications

        A missing audience is not an error: the result simply has nothing
        attempted. A failure for one partner does not stop the others.
        """
        partners = self.user_repo.get_active_partners(require_email_notifications=True)
        if not partners:
            logger.warning(
                "No partners with email notifications enabled; transition email not queued",
                extra={"vat_quarter_id": candidate.vat_quarter_id, "client_code": candidate.client_code}
            )
            return NotificationResult()

        quarter = candidate.quarter
        result = NotificationResult(attempted=len(partners))
        for partner in partners:
            composed = compose_transition_email(
                recipient_name=partner.name,
                company_name=candidate.company_name,
                client_code=candidate.client_code,
                quarter_period=quarter.quarter_period,
                quarter_end=self._business_date(quarter.quarter_end_date),
                filing_due=self._business_date(quarter.filing_due_date),
                transitioned_at=self.calendar.to_business_time(transitioned_at),
                dashboard_url=settings.vat_dashboard_url
            )
            try:
                self._queue(
                    recipient_email=partner.email,
                    recipient_name=partner.name,
                    composed=composed,
                    email_type=EmailType.VAT_QUARTER_TRANSITION,
                    client_id=candidate.client_id,
                    vat_quarter_id=quarter.vat_quarter_id,
                    triggered_by=SYSTEM_ACTOR.user_id
                )
                result.notified += 1
            except INFRASTRUCTURE_ERRORS:
                raise
            except Exception as e:
                logger.error(
                    f"Failed to queue transition email for {partner.email}: {e}",
                    extra={"vat_quarter_id": quarter.vat_quarter_id, "user_id": partner.user_id}
                )
                result.failures.append(RunError(
                    vat_quarter_id=quarter.vat_quarter_id,
                    client_id=candidate.client_id,
                    company_name=candidate.company_name,
                    error=f"{partner.email}: {e}"
                ))

        logger.info(
            f"Transition emails queued: {result.notified}/{result.attempted}",
            extra={"vat_quarter_id": quarter.vat_quarter_id, "client_code": candidate.client_code}
        )
        return result

    # =========================================================================
    # Assignment & creation
    # =========================================================================

    def enqueue_assignment(
        self,
        partner: User,
        candidate: TransitionCandidate,
        assigned_at: datetime
    ) -> EmailLogEntry:
        """Queue the assignment email to the partner who received the quarter"""
        quarter = candidate.quarter
        composed = compose_assignment_email(
            recipient_name=partner.name,
            company_name=candidate.company_name,
            client_code=candidate.client_code,
            quarter_period=quarter.quarter_period,
            quarter_end=self._business_date(quarter.quarter_end_date),
            filing_due=self._business_date(quarter.filing_due_date),
            assigned_at=self.calendar.to_business_time(assigned_at),
            dashboard_url=settings.vat_dashboard_url
        )
        return self._queue(
            recipient_email=partner.email,
            recipient_name=partner.name,
            composed=composed,
            email_type=EmailType.VAT_QUARTER_ASSIGNMENT,
            client_id=candidate.client_id,
            vat_quarter_id=quarter.vat_quarter_id,
            triggered_by=partner.user_id
        )

    def enqueue_creation(
        self,
        recipient: User,
        quarter: VatQuarter,
        client: Client,
        created_at: datetime,
        assigned_to: Optional[str] = None
    ) -> EmailLogEntry:
        """Queue the new-quarter email to the client's previous assignee"""
        composed = compose_creation_email(
            recipient_name=recipient.name,
            company_name=client.company_name,
            client_code=client.client_code,
            quarter_period=quarter.quarter_period,
            quarter_end=self._business_date(quarter.quarter_end_date),
            filing_due=self._business_date(quarter.filing_due_date),
            created_at=self.calendar.to_business_time(created_at),
            dashboard_url=settings.vat_dashboard_url,
            assigned_to=assigned_to
        )
        return self._queue(
            recipient_email=recipient.email,
            recipient_name=recipient.name,
            composed=composed,
            email_type=EmailType.VAT_QUARTER_CREATION,
            client_id=client.client_id,
            vat_quarter_id=quarter.vat_quarter_id,
            triggered_by=SYSTEM_ACTOR.user_id
        )
