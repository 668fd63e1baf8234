"""ID Generation Utilities"""
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'VQ', 'EML')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('VQ')
        'VQ-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_vat_quarter_id() -> str:
    """Generate VAT quarter ID"""
    return generate_id("VQ")


def generate_history_id() -> str:
    """Generate workflow history entry ID"""
    return generate_id("VWH")


def generate_activity_log_id() -> str:
    """Generate activity log ID"""
    return generate_id("ACT")


def generate_email_log_id() -> str:
    """Generate email log ID"""
    return generate_id("EML")


def generate_client_id() -> str:
    """Generate client ID"""
    return generate_id("CLI")


def generate_user_id() -> str:
    """Generate user ID"""
    return generate_id("USR")


def generate_run_id() -> str:
    """
    Generate an automation run ID, used as the logging correlation ID

    Returns:
        Run ID string with timestamp prefix
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"RUN-{timestamp}-{unique_part}"


def generate_correlation_id() -> str:
    """Generate a correlation ID for request tracing"""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
