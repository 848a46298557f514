"""
Auto-close sweep.

Moves tasks that have stayed Completed for longer than the grace window to
Closed.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from taskaway.core.logger import setup_logger
from taskaway.interfaces.clock import IClock
from taskaway.interfaces.task_repository import ITaskRepository
from taskaway.models.enums import TaskStatus
from taskaway.models.scheduler import AutoCloseSweepResult
from taskaway.utils.datetime_utils import ensure_utc

logger = setup_logger(__name__)

DEFAULT_GRACE_PERIOD = timedelta(hours=24)


class AutoCloseSweep:
    """Closes completed tasks after a grace period."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        clock: IClock,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    ):
        self._task_repo = task_repo
        self._clock = clock
        self._grace_period = grace_period

    async def run(self, now: Optional[datetime] = None) -> AutoCloseSweepResult:
        """
        Run one auto-close sweep.

        A task completed exactly grace_period ago is closed. Tasks that left
        Completed between the query and the update are left alone.
        """
        now = ensure_utc(now) if now else self._clock.now()
        threshold = now - self._grace_period
        logger.info("Starting auto-close processing for completed tasks...")

        tasks = await self._task_repo.list_by_status_updated_before(TaskStatus.COMPLETED, threshold)
        logger.info(f"Found {len(tasks)} completed tasks to auto-close")

        closed_count = 0
        error_count = 0
        for task in tasks:
            try:
                closed = await self._task_repo.transition_status(
                    task.id,
                    from_status=TaskStatus.COMPLETED,
                    to_status=TaskStatus.CLOSED,
                    updated_at=now,
                )
                if closed:
                    closed_count += 1
                    logger.info(f"Auto-closed task: {task.title} (ID: {task.id})")
                else:
                    logger.debug(f"Task {task.id} changed status before auto-close")
            except Exception as e:
                error_count += 1
                logger.error(f"Error auto-closing task {task.id}: {e}")

        result = AutoCloseSweepResult(
            processed=len(tasks),
            closed=closed_count,
            errors=error_count,
            started_at=now,
            finished_at=self._clock.now(),
        )
        logger.info(
            f"Auto-close processing completed: "
            f"{result.processed} processed, {result.closed} closed, {result.errors} errors"
        )
        return result
