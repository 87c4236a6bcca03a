"""Background scheduler that triggers the daily metrics rollup."""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler as APBackgroundScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from flask import Flask

from .extensions import get_session_factory
from .services.rollup import run_daily_rollup

logger = logging.getLogger("ascend.scheduler")

ROLLUP_JOB_ID = "daily_rollup"


class RollupScheduler:
    """Runs ``run_daily_rollup`` once a day at the configured time."""

    def __init__(self, app: Flask, *, blocking: bool = False):
        """Initialize the scheduler for an app.

        Args:
            app: Flask app whose config and session factory the job uses
            blocking: Run in the foreground (CLI) instead of a daemon thread
        """
        self.app = app
        self.blocking = blocking
        self.scheduler = None

    def start(self) -> None:
        """Register the rollup job and start the scheduler."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        config = self.app.config["ASCEND_CONFIG"]
        self.scheduler = BlockingScheduler() if self.blocking else APBackgroundScheduler()
        self.scheduler.add_job(
            func=self._run_rollup,
            trigger=CronTrigger(hour=config.ROLLUP_HOUR, minute=config.ROLLUP_MINUTE),
            id=ROLLUP_JOB_ID,
            name="Daily habit metrics rollup",
            replace_existing=True,
        )
        logger.info(
            "Scheduled daily rollup at %02d:%02d", config.ROLLUP_HOUR, config.ROLLUP_MINUTE
        )
        self.scheduler.start()

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self.scheduler is not None:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Rollup scheduler stopped")

    def _run_rollup(self) -> None:
        try:
            report = run_daily_rollup(get_session_factory(self.app))
        except Exception as exc:
            logger.error(f"Scheduled rollup failed: {exc}", exc_info=True)
            return
        logger.info(
            f"Scheduled rollup completed: processed={report.processed} errors={report.errors}"
        )


def create_scheduler(app: Flask, *, auto_start: bool = False, blocking: bool = False) -> RollupScheduler:
    """Create and optionally start the rollup scheduler."""
    scheduler = RollupScheduler(app, blocking=blocking)
    if auto_start:
        scheduler.start()
    return scheduler
