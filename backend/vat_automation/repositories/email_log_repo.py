"""Email Log Repository - Outbox of queued emails

Rows are written with status PENDING; delivery happens elsewhere.
"""
from typing import List, Optional
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection, to_document
from ..domain.models import EmailLogEntry
from ..domain.enums import EmailStatus, EmailType
from ..utils.logger import get_logger

logger = get_logger(__name__)


class EmailLogRepository:
    """Repository for email log operations"""

    def __init__(self, collection: Optional[Collection] = None):
        self._email_logs: Collection = collection if collection is not None else get_collection("email_logs")

    def create_email_log(
        self,
        email_log: EmailLogEntry,
        session: Optional[ClientSession] = None
    ) -> EmailLogEntry:
        """Queue an email"""
        self._email_logs.insert_one(to_document(email_log, "email_log_id"), session=session)
        logger.info(
            f"Queued email: {email_log.email_type.value}",
            extra={
                "vat_quarter_id": email_log.workflow_id,
                "email_type": email_log.email_type.value,
                "user_id": email_log.triggered_by,
            }
        )
        return email_log

    def get_pending_emails(self, limit: int = 100) -> List[EmailLogEntry]:
        """Oldest PENDING emails first"""
        cursor = self._email_logs.find(
            {"status": EmailStatus.PENDING.value}
        ).sort("created_at", ASCENDING).limit(limit)

        emails = []
        for doc in cursor:
            doc.pop("_id", None)
            emails.append(EmailLogEntry.model_validate(doc))
        return emails

    def get_emails_for_workflow(
        self,
        workflow_id: str,
        email_type: Optional[EmailType] = None
    ) -> List[EmailLogEntry]:
        """Emails queued for one VAT quarter"""
        query = {"workflow_id": workflow_id}
        if email_type:
            query["email_type"] = email_type.value

        emails = []
        for doc in self._email_logs.find(query).sort("created_at", ASCENDING):
            doc.pop("_id", None)
            emails.append(EmailLogEntry.model_validate(doc))
        return emails
