"""Audit Repository - Append-only workflow history and activity logs"""
from typing import List, Optional
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo import DESCENDING

from .mongo_client import get_collection, to_document
from ..domain.models import ActivityLogEntry, WorkflowHistoryEntry
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowHistoryRepository:
    """Repository for VAT stage change history (append-only)"""

    def __init__(self, collection: Optional[Collection] = None):
        self._history: Collection = collection if collection is not None else get_collection("vat_workflow_history")

    def create_entry(
        self,
        entry: WorkflowHistoryEntry,
        session: Optional[ClientSession] = None
    ) -> WorkflowHistoryEntry:
        """Append a history entry"""
        self._history.insert_one(to_document(entry, "history_id"), session=session)
        logger.debug(
            f"History {entry.from_stage} -> {entry.to_stage.value}",
            extra={"vat_quarter_id": entry.vat_quarter_id, "user_id": entry.user_id}
        )
        return entry

    def get_history_for_quarter(self, vat_quarter_id: str) -> List[WorkflowHistoryEntry]:
        """History for one quarter, newest first"""
        cursor = self._history.find({"vat_quarter_id": vat_quarter_id}).sort("stage_changed_at", DESCENDING)

        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(WorkflowHistoryEntry.model_validate(doc))
        return entries


class ActivityLogRepository:
    """Repository for activity log entries (append-only)"""

    def __init__(self, collection: Optional[Collection] = None):
        self._activity: Collection = collection if collection is not None else get_collection("activity_logs")

    def create_entry(
        self,
        entry: ActivityLogEntry,
        session: Optional[ClientSession] = None
    ) -> ActivityLogEntry:
        """Append an activity log entry"""
        self._activity.insert_one(to_document(entry, "activity_log_id"), session=session)
        logger.debug(
            f"Activity {entry.action.value}",
            extra={"vat_quarter_id": entry.resource_id, "action": entry.action.value}
        )
        return entry

    def get_entries_for_resource(self, resource_id: str, limit: int = 100) -> List[ActivityLogEntry]:
        """Activity for one resource, newest first"""
        cursor = self._activity.find({"resource_id": resource_id}).sort("timestamp", DESCENDING).limit(limit)

        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(ActivityLogEntry.model_validate(doc))
        return entries
