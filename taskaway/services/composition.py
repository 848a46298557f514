"""
Service wiring.

Builds the scheduler object graph once the database is available. The FastAPI
lifespan owns the result and drives start/stop.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from taskaway.core.config import Settings
from taskaway.interfaces.clock import IClock
from taskaway.interfaces.task_repository import ITaskRepository
from taskaway.services.auto_close_sweep import AutoCloseSweep
from taskaway.services.instance_materializer import InstanceMaterializer
from taskaway.services.recurrence_policy import RecurrencePolicyEvaluator
from taskaway.services.recurring_task_sweep import RecurringTaskSweep
from taskaway.services.scheduler_driver import SchedulerDriver
from taskaway.utils.clock import SystemClock


@dataclass
class SchedulerServices:
    """Everything the scheduler API needs."""

    task_repo: ITaskRepository
    clock: IClock
    evaluator: RecurrencePolicyEvaluator
    recurring_sweep: RecurringTaskSweep
    auto_close_sweep: AutoCloseSweep
    driver: SchedulerDriver


def build_scheduler_services(
    settings: Settings,
    task_repo: ITaskRepository,
    clock: Optional[IClock] = None,
) -> SchedulerServices:
    """Construct evaluator, sweeps and driver around one repository and clock."""
    clock = clock or SystemClock()
    evaluator = RecurrencePolicyEvaluator(task_repo, clock)
    recurring_sweep = RecurringTaskSweep(
        task_repo,
        clock,
        evaluator=evaluator,
        materializer=InstanceMaterializer(task_repo, clock),
        concurrency=settings.RECURRING_SWEEP_CONCURRENCY,
    )
    auto_close_sweep = AutoCloseSweep(
        task_repo,
        clock,
        grace_period=timedelta(hours=settings.AUTO_CLOSE_GRACE_HOURS),
    )
    driver = SchedulerDriver(
        recurring_sweep,
        auto_close_sweep,
        clock,
        cron_expression=settings.SCHEDULER_CRON,
        timezone=settings.SCHEDULER_TIMEZONE,
        description=settings.SCHEDULER_DESCRIPTION,
    )
    return SchedulerServices(
        task_repo=task_repo,
        clock=clock,
        evaluator=evaluator,
        recurring_sweep=recurring_sweep,
        auto_close_sweep=auto_close_sweep,
        driver=driver,
    )
