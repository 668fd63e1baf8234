"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection, unit_of_work
from .vat_quarter_repo import VatQuarterRepository
from .client_repo import ClientRepository
from .user_repo import UserRepository
from .audit_repo import WorkflowHistoryRepository, ActivityLogRepository
from .email_log_repo import EmailLogRepository

__all__ = [
    "get_database",
    "get_collection",
    "unit_of_work",
    "VatQuarterRepository",
    "ClientRepository",
    "UserRepository",
    "WorkflowHistoryRepository",
    "ActivityLogRepository",
    "EmailLogRepository",
]
