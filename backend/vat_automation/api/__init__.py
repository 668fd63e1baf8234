"""API module - Routes and dependencies"""
from .deps import get_automation_service, verify_automation_token

__all__ = ["get_automation_service", "verify_automation_token"]
