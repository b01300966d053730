"""Scheduler service for the daily bulk stock refresh."""

import logging
from collections.abc import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from src.database.db import SessionLocal
from src.models.stock import RefreshReport
from src.services.stock_sync_service import StockSyncService
from src.utils.logger import StructuredLogger
from src.utils.trace_context import clear_trace, create_trace

logger = logging.getLogger(__name__)
structured_logger = StructuredLogger("SchedulerService")

REFRESH_JOB_ID = "daily_stock_refresh"


class SchedulerService:
    """Runs refresh_all on a daily schedule with its own database session."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        sync_factory: Callable[[Session], StockSyncService] = StockSyncService,
        timezone: str = "UTC",
    ):
        """
        Initialize scheduler service.

        Args:
            session_factory: Creates a database session per scheduled run
            sync_factory: Builds the sync service for a session
            timezone: Timezone the refresh time is expressed in
        """
        self.scheduler = BackgroundScheduler(timezone=timezone)
        self.session_factory = session_factory
        self.sync_factory = sync_factory
        self.is_running = False

    def schedule_refresh(self, refresh_time: str) -> None:
        """
        Set up the recurring daily refresh.

        Args:
            refresh_time: Time of day for the refresh (HH:MM format)

        Raises:
            ValueError: If time format is invalid
        """
        self._validate_time_format(refresh_time)
        hour, minute = map(int, refresh_time.split(":"))

        self.scheduler.add_job(
            self.execute_refresh,
            CronTrigger(hour=hour, minute=minute),
            id=REFRESH_JOB_ID,
            name="Daily Stock Refresh",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Scheduled stock refresh at {refresh_time}")

        if not self.is_running:
            self.scheduler.start()
            self.is_running = True
            logger.info("Scheduler started")

    def execute_refresh(self) -> RefreshReport | None:
        """
        Refresh every tracked stock.

        Returns:
            The batch report, or None if the run could not complete
        """
        trace_id = create_trace()
        db_session = self.session_factory()
        try:
            structured_logger.info("Starting scheduled stock refresh", context={"trace_id": trace_id})
            report = self.sync_factory(db_session).refresh_all()
            structured_logger.info(
                "Scheduled stock refresh finished",
                context={
                    "trace_id": trace_id,
                    "succeeded": len(report.succeeded),
                    "failed": len(report.failed),
                },
            )
            return report
        except Exception as e:
            # A scheduled job has no caller to propagate to
            structured_logger.error(
                "Scheduled stock refresh failed",
                context={"trace_id": trace_id},
                exception=e,
            )
            return None
        finally:
            db_session.close()
            clear_trace()

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.is_running:
            self.scheduler.shutdown()
            self.is_running = False
            logger.info("Scheduler stopped")

    def _validate_time_format(self, time_str: str) -> None:
        """
        Validate time format (HH:MM).

        Raises:
            ValueError: If format is invalid
        """
        try:
            parts = time_str.split(":")
            if len(parts) != 2:
                raise ValueError(f"Invalid time format: {time_str}. Use HH:MM")
            hour, minute = int(parts[0]), int(parts[1])
            if not (0 <= hour < 24 and 0 <= minute < 60):
                raise ValueError(f"Invalid time values: {time_str}")
        except (ValueError, AttributeError) as e:
            raise ValueError(f"Invalid time format: {e}") from e
