"""
Email Templates Package

Plain-text emails queued by the VAT automation.
"""
from .email_templates import (
    ComposedEmail,
    compose_transition_email,
    compose_assignment_email,
    compose_creation_email,
)

__all__ = [
    "ComposedEmail",
    "compose_transition_email",
    "compose_assignment_email",
    "compose_creation_email",
]
