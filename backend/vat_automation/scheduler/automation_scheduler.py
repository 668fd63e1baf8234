"""Automation Scheduler - In-process cron for the VAT jobs

Two jobs, both on the business timezone:
- daily: transition ended quarters (and auto-assign when configured)
- monthly: create last month's quarters on the creation day

Single-process only; running several instances against one database is
not coordinated.
"""
import asyncio
from typing import Callable, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config.settings import settings
from ..services.automation_service import VatAutomationService
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AutomationScheduler:
    """APScheduler wrapper running the daily and monthly VAT jobs"""

    DAILY_JOB_ID = "vat_daily_transitions"
    MONTHLY_JOB_ID = "vat_monthly_creation"

    def __init__(self, service_factory: Optional[Callable[[], VatAutomationService]] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._service_factory = service_factory or VatAutomationService
        self._service: Optional[VatAutomationService] = None
        self._is_running = False

    @property
    def service(self) -> VatAutomationService:
        if self._service is None:
            self._service = self._service_factory()
        return self._service

    def start(self) -> None:
        """Start the scheduler"""
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        self.scheduler = AsyncIOScheduler(timezone=settings.business_timezone)

        self.scheduler.add_job(
            self._run_daily,
            trigger=CronTrigger(
                hour=settings.transition_run_hour,
                minute=settings.transition_run_minute,
                timezone=settings.business_timezone
            ),
            id=self.DAILY_JOB_ID,
            name="Transition ended VAT quarters",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )

        self.scheduler.add_job(
            self._run_monthly,
            trigger=CronTrigger(
                day=settings.quarter_creation_day,
                hour=settings.creation_run_hour,
                minute=settings.creation_run_minute,
                timezone=settings.business_timezone
            ),
            id=self.MONTHLY_JOB_ID,
            name="Create next VAT quarters",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )

        self.scheduler.start()
        self._is_running = True
        logger.info(
            "Automation scheduler started",
            extra={"status": f"daily {settings.transition_run_hour:02d}:{settings.transition_run_minute:02d}"}
        )

    def stop(self) -> None:
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("Automation scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running"""
        return self._is_running

    async def _run_daily(self) -> None:
        try:
            result = await asyncio.to_thread(self.service.run_daily)
            logger.info(
                f"Daily VAT run finished: {result.transitions.transitioned} transitioned",
                extra={"run_id": result.run_id}
            )
        except Exception as e:
            logger.error(f"Daily VAT run failed: {e}", exc_info=True)

    async def _run_monthly(self) -> None:
        try:
            result = await asyncio.to_thread(self.service.run_monthly)
            logger.info(
                f"Monthly VAT creation finished: {result.created} created",
                extra={"run_id": result.run_id}
            )
        except Exception as e:
            logger.error(f"Monthly VAT creation failed: {e}", exc_info=True)


# Global scheduler instance
_scheduler: Optional[AutomationScheduler] = None


def get_scheduler() -> AutomationScheduler:
    """Get or create scheduler instance"""
    global _scheduler
    if _scheduler is None:
        _scheduler = AutomationScheduler()
    return _scheduler


def start_scheduler() -> None:
    """Start the global scheduler"""
    get_scheduler().start()


def stop_scheduler() -> None:
    """Stop the global scheduler"""
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None
