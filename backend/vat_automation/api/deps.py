"""API Dependencies - Common dependencies for routes"""
import hmac
from typing import Optional
from fastapi import Header, HTTPException, status

from ..config.settings import settings
from ..domain.errors import AuthenticationError, AuthorizationError, AutomationNotConfiguredError
from ..services.automation_service import VatAutomationService
from ..utils.logger import get_logger

logger = get_logger(__name__)


def get_automation_service() -> VatAutomationService:
    """Service wired to the real repositories"""
    return VatAutomationService()


async def verify_automation_token(
    authorization: Optional[str] = Header(None)
) -> None:
    """
    Require ``Authorization: Bearer <automation_secret>``

    Raises:
        HTTPException: 500 if no secret is configured, 401 if the token is
            missing or wrong
    """
    if not settings.automation_secret:
        error = AutomationNotConfiguredError("Automation secret is not configured")
        logger.error(error.message)
        raise HTTPException(status_code=error.http_status, detail=error.to_dict())

    token = ""
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:]

    if not token or not hmac.compare_digest(token, settings.automation_secret):
        error = AuthenticationError("Invalid or missing automation token")
        logger.warning(error.message)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error.to_dict(),
            headers={"WWW-Authenticate": "Bearer"}
        )


async def require_non_production() -> None:
    """Block test-only endpoints in production"""
    if settings.is_production:
        error = AuthorizationError("Test endpoints are disabled in production")
        raise HTTPException(status_code=error.http_status, detail=error.to_dict())
