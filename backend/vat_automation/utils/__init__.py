"""Utility modules - logging, IDs and the business calendar"""
from .logger import get_logger, setup_logging, set_correlation_id, get_correlation_id
from .idgen import generate_id, generate_run_id, generate_correlation_id
from .time import BusinessCalendar, get_business_calendar, utc_now, format_iso, parse_iso

__all__ = [
    "get_logger",
    "setup_logging",
    "set_correlation_id",
    "get_correlation_id",
    "generate_id",
    "generate_run_id",
    "generate_correlation_id",
    "BusinessCalendar",
    "get_business_calendar",
    "utc_now",
    "format_iso",
    "parse_iso",
]
