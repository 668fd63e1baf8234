"""
API Middleware

- correlation: X-Correlation-Id per request, shared with the log context
- error_handlers: JSON error envelope for domain, validation and unexpected errors
"""

from .correlation import CorrelationIdMiddleware
from .error_handlers import register_error_handlers

__all__ = ["CorrelationIdMiddleware", "register_error_handlers"]
