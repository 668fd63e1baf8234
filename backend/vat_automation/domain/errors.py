"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional

from pymongo.errors import ConnectionFailure


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Bearer token missing or wrong"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """Caller may not use this endpoint"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class AutomationNotConfiguredError(DomainError):
    """Automation secret is not configured on the server"""
    error_code = "AUTOMATION_NOT_CONFIGURED"
    http_status = 500


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class InvalidQuarterGroupError(ValidationError):
    """Client carries a quarter group outside the known set"""
    error_code = "INVALID_QUARTER_GROUP"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Record changed underneath a compare-and-set update"""
    error_code = "CONCURRENCY_CONFLICT"


class AlreadyExistsError(ConflictError):
    """Resource already exists"""
    error_code = "ALREADY_EXISTS"


class InvalidStageTransitionError(ConflictError):
    """Stage move not permitted by the workflow order"""
    error_code = "INVALID_STAGE_TRANSITION"


# Store unreachable: these abort a whole run instead of failing one record
INFRASTRUCTURE_ERRORS = (ConnectionFailure,)
