"""
Recurring task sweep.

One pass over all active recurring templates: evaluate each one and create an
instance where one is due. A failure on one template is logged and counted but
never stops the rest of the sweep.
"""

from __future__ import annotations

import asyncio
import weakref
from datetime import datetime
from typing import Optional
from uuid import UUID

from taskaway.core.exceptions import DuplicateError
from taskaway.core.logger import setup_logger
from taskaway.interfaces.clock import IClock
from taskaway.interfaces.task_repository import ITaskRepository
from taskaway.models.scheduler import RecurringSweepResult
from taskaway.models.task import Task
from taskaway.services.instance_materializer import InstanceMaterializer
from taskaway.services.recurrence_policy import RecurrencePolicyEvaluator
from taskaway.utils.datetime_utils import ensure_utc

logger = setup_logger(__name__)

_CREATED = "created"
_SKIPPED = "skipped"
_DUPLICATE = "duplicate"
_INVALID = "invalid"
_ERROR = "error"


class RecurringTaskSweep:
    """Generates due instances for every active recurring template."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        clock: IClock,
        evaluator: Optional[RecurrencePolicyEvaluator] = None,
        materializer: Optional[InstanceMaterializer] = None,
        concurrency: int = 1,
    ):
        self._task_repo = task_repo
        self._clock = clock
        self._evaluator = evaluator or RecurrencePolicyEvaluator(task_repo, clock)
        self._materializer = materializer or InstanceMaterializer(task_repo, clock)
        self._concurrency = max(1, concurrency)
        # Entries disappear once no coroutine holds or waits on the lock
        self._template_locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, template_id: UUID) -> asyncio.Lock:
        lock = self._template_locks.get(template_id)
        if lock is None:
            lock = asyncio.Lock()
            self._template_locks[template_id] = lock
        return lock

    async def process_template(self, template: Task, now: datetime) -> str:
        """
        Evaluate one template and materialize an instance if due.

        The history lookup and the insert for the same template are serialized
        so overlapping sweeps in this process cannot both see "no instance yet".
        Returns one of created / skipped / duplicate / invalid / error.
        """
        async with self._lock_for(template.id):
            try:
                decision = await self._evaluator.explain(template, now)
                if decision.invalid_config:
                    return _INVALID
                if not decision.should_generate:
                    logger.debug(f"Template {template.id} not due: {decision.reason}")
                    return _SKIPPED

                await self._materializer.create_instance(
                    template, now=now, period_bucket=decision.period_bucket
                )
                logger.info(f"Created recurring task instance for: {template.title} ({decision.reason})")
                return _CREATED
            except DuplicateError:
                logger.info(f"Template {template.id} already has an instance for this period")
                return _DUPLICATE
            except Exception as e:
                logger.error(f"Error processing recurring task {template.id}: {e}")
                return _ERROR

    async def run(self, now: Optional[datetime] = None) -> RecurringSweepResult:
        """
        Run one recurring-task sweep.

        Raises:
            Exception: Whatever the template query raises; per-template
                failures are counted instead
        """
        now = ensure_utc(now) if now else self._clock.now()
        logger.info("Starting recurring task processing...")

        templates = await self._task_repo.list_active_templates(now)
        logger.info(f"Found {len(templates)} recurring tasks to process")

        semaphore = asyncio.Semaphore(self._concurrency)

        async def _bounded(template: Task) -> str:
            async with semaphore:
                return await self.process_template(template, now)

        outcomes = await asyncio.gather(*(_bounded(t) for t in templates))

        result = RecurringSweepResult(
            processed=len(templates),
            created=outcomes.count(_CREATED),
            skipped=outcomes.count(_SKIPPED),
            duplicates=outcomes.count(_DUPLICATE),
            invalid=outcomes.count(_INVALID),
            errors=outcomes.count(_ERROR),
            started_at=now,
            finished_at=self._clock.now(),
        )
        logger.info(
            f"Recurring task processing completed: "
            f"{result.processed} processed, {result.created} created, "
            f"{result.skipped} skipped, {result.duplicates} duplicates, "
            f"{result.invalid} invalid, {result.errors} errors"
        )
        return result
