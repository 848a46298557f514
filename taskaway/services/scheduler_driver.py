"""
Scheduler driver.

Runs the recurring-task sweep and the auto-close sweep together on a daily
cron schedule using APScheduler, and exposes start/stop/trigger/status for the
operational API. Only one sweep pair runs at a time: a tick or trigger that
arrives while a pair is in flight waits for that pair and shares its result.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from taskaway.core.exceptions import SchedulerError
from taskaway.core.logger import setup_logger
from taskaway.interfaces.clock import IClock
from taskaway.models.scheduler import (
    AutoCloseSweepResult,
    RecurringSweepResult,
    SchedulerStatus,
    SweepRunResult,
)
from taskaway.services.auto_close_sweep import AutoCloseSweep
from taskaway.services.recurring_task_sweep import RecurringTaskSweep

logger = setup_logger(__name__)

JOB_ID = "daily_task_sweeps"
SCHEDULED_FUNCTIONS = [
    "Process recurring tasks",
    "Auto-close completed tasks older than the grace period",
]


class SchedulerDriver:
    """Daily timer around the two task sweeps."""

    def __init__(
        self,
        recurring_sweep: RecurringTaskSweep,
        auto_close_sweep: AutoCloseSweep,
        clock: IClock,
        cron_expression: str = "0 2 * * *",
        timezone: str = "UTC",
        description: str = "Daily at 2 AM UTC",
    ):
        self._recurring_sweep = recurring_sweep
        self._auto_close_sweep = auto_close_sweep
        self._clock = clock
        self._cron_expression = cron_expression
        self._timezone = timezone
        self._description = description
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._inflight: Optional[asyncio.Task] = None
        self._last_run_at: Optional[datetime] = None
        self._last_result: Optional[SweepRunResult] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def start(self):
        """Install the daily timer, replacing any previous one."""
        if self._scheduler is not None:
            # restart safety
            self._shutdown_scheduler()

        scheduler = AsyncIOScheduler(timezone=self._timezone)
        scheduler.add_job(
            self._run_scheduled_tick,
            CronTrigger.from_crontab(self._cron_expression, timezone=self._timezone),
            id=JOB_ID,
            name="Recurring Task and Auto-Close Sweeps",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            f"Scheduler started ({self._description}, cron '{self._cron_expression}' {self._timezone})"
        )

    async def stop(self):
        """Remove the timer. A sweep pair already in flight runs to completion."""
        if self._scheduler is not None:
            self._shutdown_scheduler()
            logger.info("Scheduler stopped")

    def _shutdown_scheduler(self):
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

    def status(self) -> SchedulerStatus:
        """Describe the timer and the most recent run."""
        next_run_time = None
        if self.is_running:
            job = self._scheduler.get_job(JOB_ID)
            next_run_time = job.next_run_time if job else None
        return SchedulerStatus(
            is_running=self.is_running,
            cron_expression=self._cron_expression,
            timezone=self._timezone,
            next_run=self._description if self.is_running else None,
            next_run_time=next_run_time,
            functions=list(SCHEDULED_FUNCTIONS),
            last_run_at=self._last_run_at,
            last_result=self._last_result,
        )

    async def trigger_now(self) -> SweepRunResult:
        """
        Run both sweeps immediately and wait for them.

        Raises:
            SchedulerError: If either sweep failed
        """
        logger.info("Manually triggering scheduler processing...")
        result = await self._run_sweeps()
        logger.info("Manual trigger completed successfully")
        return result

    async def _run_scheduled_tick(self):
        """Timer callback. Failures are logged; the next tick still fires."""
        logger.info(f"Running scheduler tasks at: {self._clock.now().isoformat()}")
        try:
            await self._run_sweeps()
            logger.info("Scheduler tasks completed")
        except Exception as e:
            logger.error(f"Scheduler error: {e}")

    async def _run_sweeps(self) -> SweepRunResult:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._run_sweep_pair())
        else:
            logger.info("Sweeps already in progress, waiting for the running pass")
        # shield: a cancelled waiter must not cancel the shared run
        return await asyncio.shield(self._inflight)

    async def _run_sweep_pair(self) -> SweepRunResult:
        recurring, auto_close = await asyncio.gather(
            self._recurring_sweep.run(),
            self._auto_close_sweep.run(),
            return_exceptions=True,
        )
        result = SweepRunResult(
            recurring=recurring if isinstance(recurring, RecurringSweepResult) else None,
            auto_close=auto_close if isinstance(auto_close, AutoCloseSweepResult) else None,
        )
        self._last_run_at = self._clock.now()
        self._last_result = result

        failures = [r for r in (recurring, auto_close) if isinstance(r, BaseException)]
        if failures:
            names = ", ".join(type(f).__name__ for f in failures)
            raise SchedulerError(
                f"Scheduler sweep failed: {failures[0]}",
                details={"failures": names},
            ) from failures[0]
        return result
