"""
Scheduler models.

Result objects returned by the sweeps and the status exposed by the driver.
These are API payloads and use camelCase keys on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Payload serialized with camelCase keys; accepts field names on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecurringSweepResult(CamelModel):
    """Aggregate counts of one recurring-task sweep."""

    processed: int = 0
    created: int = 0
    skipped: int = 0
    duplicates: int = 0
    invalid: int = 0
    errors: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class AutoCloseSweepResult(CamelModel):
    """Aggregate counts of one auto-close sweep."""

    processed: int = 0
    closed: int = 0
    errors: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class SweepRunResult(CamelModel):
    """Outcome of running both sweeps together."""

    recurring: Optional[RecurringSweepResult] = None
    auto_close: Optional[AutoCloseSweepResult] = None


class GenerationDecision(CamelModel):
    """Why the evaluator did or did not decide to generate an instance."""

    template_id: str
    should_generate: bool
    reason: str
    period_bucket: Optional[str] = None
    invalid_config: bool = False
    evaluated_at: datetime


class SchedulerStatus(CamelModel):
    """Current state of the scheduler driver."""

    is_running: bool
    cron_expression: str
    timezone: str
    next_run: Optional[str] = None
    next_run_time: Optional[datetime] = None
    functions: list[str] = Field(default_factory=list)
    last_run_at: Optional[datetime] = None
    last_result: Optional[SweepRunResult] = None


class SchedulerActionResponse(CamelModel):
    """Response body of start/stop/trigger operations."""

    success: bool
    message: str
    result: Optional[SweepRunResult] = None
