"""Cron scheduling for recurring form monitoring batches."""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

logger = structlog.get_logger(__name__)


def parse_cron(cron_expression: str) -> CronTrigger:
    """Build a trigger from a 5-field cron expression: minute hour day month day_of_week."""
    cron_parts = cron_expression.split()
    if len(cron_parts) != 5:
        raise ValueError(f"Invalid cron expression: {cron_expression}")

    return CronTrigger(
        minute=cron_parts[0],
        hour=cron_parts[1],
        day=cron_parts[2],
        month=cron_parts[3],
        day_of_week=cron_parts[4]
    )


class BatchScheduler:
    """Runs one batch per cron tick; a tick that fires while a batch is running is skipped."""

    JOB_ID = "form_monitoring_batch"

    def __init__(self, run_batch: Callable[[], Awaitable[object]], cron_expression: str):
        self.run_batch = run_batch
        self.trigger = parse_cron(cron_expression)
        self.cron_expression = cron_expression
        self.scheduler: Optional[AsyncIOScheduler] = None

    async def _job(self):
        try:
            await self.run_batch()
        except Exception:
            logger.exception("Scheduled batch crashed")

    def start(self):
        """Start the scheduler on the running event loop."""
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            func=self._job,
            trigger=self.trigger,
            id=self.JOB_ID,
            name="Form monitoring batch",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        job = self.scheduler.get_job(self.JOB_ID)
        logger.info(
            "Batch scheduler started",
            cron=self.cron_expression,
            next_run=job.next_run_time.isoformat() if job and job.next_run_time else None,
        )

    def stop(self):
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Batch scheduler stopped")
        self.scheduler = None

    async def run_forever(self):
        self.start()
        try:
            await asyncio.Event().wait()
        finally:
            self.stop()
