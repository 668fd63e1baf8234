"""Audit Writer - Append-only workflow history and activity log entries"""
from datetime import datetime
from typing import Any, Dict, Optional

from pymongo.client_session import ClientSession

from ..domain.models import ActorSnapshot, ActivityLogEntry, WorkflowHistoryEntry
from ..domain.enums import ActivityAction, VatWorkflowStage
from ..repositories.audit_repo import ActivityLogRepository, WorkflowHistoryRepository
from ..utils.idgen import generate_activity_log_id, generate_history_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditWriter:
    """
    Write audit records (append-only)

    Every automated stage change produces one history entry and one
    activity log entry, written inside the caller's unit of work.
    """

    def __init__(
        self,
        history_repo: Optional[WorkflowHistoryRepository] = None,
        activity_repo: Optional[ActivityLogRepository] = None
    ):
        self.history_repo = history_repo or WorkflowHistoryRepository()
        self.activity_repo = activity_repo or ActivityLogRepository()

    def write_stage_change(
        self,
        vat_quarter_id: str,
        from_stage: Optional[VatWorkflowStage],
        to_stage: VatWorkflowStage,
        actor: ActorSnapshot,
        changed_at: datetime,
        notes: Optional[str] = None,
        session: Optional[ClientSession] = None
    ) -> WorkflowHistoryEntry:
        """Write a workflow history entry"""
        entry = WorkflowHistoryEntry(
            history_id=generate_history_id(),
            vat_quarter_id=vat_quarter_id,
            from_stage=from_stage,
            to_stage=to_stage,
            stage_changed_at=changed_at,
            user_id=actor.user_id,
            user_name=actor.name,
            user_email=actor.email,
            user_role=actor.role,
            notes=notes,
            created_at=utc_now()
        )
        return self.history_repo.create_entry(entry, session=session)

    def write_activity(
        self,
        action: ActivityAction,
        vat_quarter_id: str,
        timestamp: datetime,
        client_id: Optional[str] = None,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        session: Optional[ClientSession] = None
    ) -> ActivityLogEntry:
        """Write an activity log entry for a VAT quarter"""
        entry = ActivityLogEntry(
            activity_log_id=generate_activity_log_id(),
            action=action,
            resource_id=vat_quarter_id,
            client_id=client_id,
            user_id=user_id,
            details=details or {},
            timestamp=timestamp
        )
        return self.activity_repo.create_entry(entry, session=session)
