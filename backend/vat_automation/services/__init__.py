"""Service modules - Business logic layer"""
from .notification_service import VatNotificationService
from .transition_service import VatTransitionService
from .assignment_service import AutoAssignmentService, AssignmentCursor
from .quarter_creation_service import QuarterCreationService
from .automation_service import VatAutomationService

__all__ = [
    "VatNotificationService",
    "VatTransitionService",
    "AutoAssignmentService",
    "AssignmentCursor",
    "QuarterCreationService",
    "VatAutomationService",
]
