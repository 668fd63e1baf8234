"""VAT Engine - Quarter calendar, stage rules and audit writing"""
from .audit_writer import AuditWriter
from .period_calculator import compute_period, compute_quarter_containing, next_quarter
from .stage_rules import ensure_transition_allowed, validate_stage_transition

__all__ = [
    "AuditWriter",
    "compute_period",
    "compute_quarter_containing",
    "next_quarter",
    "ensure_transition_allowed",
    "validate_stage_transition",
]
