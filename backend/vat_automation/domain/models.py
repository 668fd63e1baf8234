"""Domain Models - Pydantic schemas for all entities"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict

from .enums import (
    QuarterGroup, VatWorkflowStage, UserRole, EmailStatus, EmailType,
    ActivityAction, CreationAction
)
from ..config.settings import settings


# ============================================================================
# Identity
# ============================================================================

class ActorSnapshot(BaseModel):
    """Who performed a stage change, captured at the time of the change"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: str
    name: str
    email: str
    role: UserRole


SYSTEM_ACTOR = ActorSnapshot(
    user_id="SYSTEM",
    name=settings.system_user_name,
    email=settings.system_email,
    role=UserRole.SYSTEM,
)


class User(BaseModel):
    """Staff member"""
    model_config = ConfigDict(extra="ignore")

    user_id: str
    name: str
    email: EmailStr
    role: UserRole
    is_active: bool = True
    email_notifications: bool = True
    created_at: datetime

    def to_actor(self) -> ActorSnapshot:
        return ActorSnapshot(
            user_id=self.user_id,
            name=self.name,
            email=self.email,
            role=self.role,
        )


class Client(BaseModel):
    """Practice client; only the fields the VAT automation reads"""
    model_config = ConfigDict(extra="ignore")

    client_id: str
    client_code: str
    company_name: str
    email: Optional[str] = None
    contact_name: Optional[str] = None
    is_vat_enabled: bool = False
    vat_quarter_group: Optional[str] = None  # Free text; validated at use
    created_at: Optional[datetime] = None


# ============================================================================
# VAT Quarter
# ============================================================================

class VatQuarterInfo(BaseModel):
    """Calendar facts of one VAT quarter"""
    model_config = ConfigDict(frozen=True)

    quarter_group: QuarterGroup
    start_date: date
    end_date: date
    filing_due_date: date
    quarter_period: str


class VatQuarter(BaseModel):
    """One VAT filing period for one client"""
    model_config = ConfigDict(extra="ignore")

    vat_quarter_id: str
    client_id: str
    quarter_period: str
    quarter_start_date: datetime
    quarter_end_date: datetime
    filing_due_date: datetime
    quarter_group: QuarterGroup
    current_stage: VatWorkflowStage = Field(default=VatWorkflowStage.WAITING_FOR_QUARTER_END)
    is_completed: bool = False
    assigned_user_id: Optional[str] = None

    # Milestones
    chase_started_date: Optional[datetime] = None
    chase_started_by_user_id: Optional[str] = None
    chase_started_by_user_name: Optional[str] = None
    paperwork_received_date: Optional[datetime] = None
    paperwork_received_by_user_id: Optional[str] = None
    paperwork_received_by_user_name: Optional[str] = None
    work_started_date: Optional[datetime] = None
    work_started_by_user_id: Optional[str] = None
    work_started_by_user_name: Optional[str] = None
    work_finished_date: Optional[datetime] = None
    work_finished_by_user_id: Optional[str] = None
    work_finished_by_user_name: Optional[str] = None
    sent_to_client_date: Optional[datetime] = None
    sent_to_client_by_user_id: Optional[str] = None
    sent_to_client_by_user_name: Optional[str] = None
    client_approved_date: Optional[datetime] = None
    client_approved_by_user_id: Optional[str] = None
    client_approved_by_user_name: Optional[str] = None
    filed_to_hmrc_date: Optional[datetime] = None
    filed_to_hmrc_by_user_id: Optional[str] = None
    filed_to_hmrc_by_user_name: Optional[str] = None

    created_at: datetime
    updated_at: datetime


class TransitionCandidate(BaseModel):
    """A quarter joined with the identity fields of its client"""
    model_config = ConfigDict(frozen=True)

    quarter: VatQuarter
    client_id: str
    client_code: str
    company_name: str
    client_email: Optional[str] = None

    @property
    def vat_quarter_id(self) -> str:
        return self.quarter.vat_quarter_id


# ============================================================================
# Audit trail
# ============================================================================

class WorkflowHistoryEntry(BaseModel):
    """Stage change record (append-only)"""
    model_config = ConfigDict(extra="ignore", frozen=True)

    history_id: str
    vat_quarter_id: str
    from_stage: Optional[VatWorkflowStage] = None
    to_stage: VatWorkflowStage
    stage_changed_at: datetime
    user_id: str
    user_name: str
    user_email: str
    user_role: UserRole
    notes: Optional[str] = None
    created_at: datetime


class ActivityLogEntry(BaseModel):
    """Activity feed record (append-only)"""
    model_config = ConfigDict(extra="ignore", frozen=True)

    activity_log_id: str
    action: ActivityAction
    resource: str = "VAT_QUARTER"
    resource_id: str
    client_id: Optional[str] = None
    user_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


class EmailLogEntry(BaseModel):
    """Queued email; an external worker delivers PENDING rows"""
    model_config = ConfigDict(extra="ignore")

    email_log_id: str
    recipient_email: str
    recipient_name: str
    from_email: str
    from_name: str
    subject: str
    content: str
    email_type: EmailType
    status: EmailStatus = Field(default=EmailStatus.PENDING)
    client_id: Optional[str] = None
    workflow_type: str = "VAT"
    workflow_id: Optional[str] = None
    triggered_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    sent_at: Optional[datetime] = None
    failure_reason: Optional[str] = None


# ============================================================================
# Run results
# ============================================================================

class RunError(BaseModel):
    """One record that failed during a batch run"""
    vat_quarter_id: Optional[str] = None
    client_id: Optional[str] = None
    company_name: Optional[str] = None
    error: str


class NotificationResult(BaseModel):
    """Outcome of notifying partners about one event"""
    attempted: int = 0
    notified: int = 0
    failures: List[RunError] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return self.notified > 0


class TransitionRunResult(BaseModel):
    """Summary of a daily transition run"""
    run_id: Optional[str] = None
    candidates: int = 0
    transitioned: int = 0
    notified: int = 0
    emails_queued: int = 0
    transitioned_quarter_ids: List[str] = Field(default_factory=list)
    errors: List[RunError] = Field(default_factory=list)


class AssignmentDetail(BaseModel):
    vat_quarter_id: str
    client_code: str
    company_name: str
    assigned_user_id: str
    assigned_user_name: str


class AssignmentRunResult(BaseModel):
    """Summary of an auto-assignment run"""
    run_id: Optional[str] = None
    candidates: int = 0
    partners: int = 0
    assigned: int = 0
    emails_queued: int = 0
    assignments: List[AssignmentDetail] = Field(default_factory=list)
    errors: List[RunError] = Field(default_factory=list)
    skipped_reason: Optional[str] = None


class DailyRunResult(BaseModel):
    """Transition run optionally followed by auto-assignment"""
    run_id: str
    transitions: TransitionRunResult
    assignment: Optional[AssignmentRunResult] = None


class QuarterCreationDetail(BaseModel):
    """Per-client outcome of a creation run"""
    client_id: str
    company_name: str
    client_code: Optional[str] = None
    action: CreationAction
    quarter_period: Optional[str] = None
    assigned_to: Optional[str] = None
    notified: Optional[str] = None
    reason: Optional[str] = None


class QuarterCreationResult(BaseModel):
    """Summary of a monthly creation run"""
    run_id: Optional[str] = None
    reference_date: date
    skip_emails: bool = False
    processed: int = 0
    created: int = 0
    skipped: int = 0
    emails_sent: int = 0
    errors: List[RunError] = Field(default_factory=list)
    quarter_details: List[QuarterCreationDetail] = Field(default_factory=list)
    gated_reason: Optional[str] = None
