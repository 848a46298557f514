"""Pydantic models (schemas) for the application."""

from taskaway.models.enums import (
    EndType,
    MonthlyOrdinal,
    RecurrencePattern,
    TaskStatus,
    Weekday,
)
from taskaway.models.recurrence import RecurrenceConfig
from taskaway.models.scheduler import (
    AutoCloseSweepResult,
    GenerationDecision,
    RecurringSweepResult,
    SchedulerActionResponse,
    SchedulerStatus,
    SweepRunResult,
)
from taskaway.models.task import Task, TaskCreate, TaskFile

__all__ = [
    "AutoCloseSweepResult",
    "EndType",
    "GenerationDecision",
    "MonthlyOrdinal",
    "RecurrenceConfig",
    "RecurrencePattern",
    "RecurringSweepResult",
    "SchedulerActionResponse",
    "SchedulerStatus",
    "SweepRunResult",
    "Task",
    "TaskCreate",
    "TaskFile",
    "TaskStatus",
    "Weekday",
]
