"""
VAT Quarter Automation - Main FastAPI Application

Hosts the cron-triggered automation endpoints and, when enabled, the
in-process scheduler that runs the same jobs.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI

from .config.settings import settings
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .repositories.mongo_client import create_indexes, close_connection, health_check
from .scheduler.automation_scheduler import get_scheduler, start_scheduler, stop_scheduler
from .utils.logger import setup_logging, get_logger

# Setup logging first
setup_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create MongoDB indexes, start the scheduler when enabled.
    Shutdown: stop the scheduler, close the database connection.
    """
    logger.info("Starting VAT Quarter Automation...")

    try:
        create_indexes()
    except Exception as e:
        logger.error(f"Failed to create indexes: {e}")

    if settings.scheduler_enabled:
        try:
            start_scheduler()
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")

    logger.info(
        "VAT automation ready",
        extra={"status": "scheduler on" if settings.scheduler_enabled else "scheduler off"}
    )

    yield

    logger.info("Stopping VAT automation...")
    stop_scheduler()
    close_connection()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    application = FastAPI(
        title="VAT Quarter Automation",
        description="Quarter-end transitions, partner assignment and monthly VAT quarter creation",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )

    application.add_middleware(CorrelationIdMiddleware)
    register_error_handlers(application)
    _configure_routes(application)

    return application


def _configure_routes(app: FastAPI) -> None:
    """Configure application routes."""
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health():
        """Application health including database connectivity."""
        mongo_health = health_check()
        return {
            "status": "healthy" if mongo_health.get("status") == "healthy" else "degraded",
            "version": APP_VERSION,
            "environment": settings.environment,
            "mongo": mongo_health,
            "scheduler": "running" if get_scheduler().is_running else "stopped",
            "business_timezone": settings.business_timezone
        }


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()
