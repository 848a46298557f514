"""
Instance materializer.

Creates a task instance from a recurring template and links the template to
its first generated instance.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from taskaway.core.logger import setup_logger
from taskaway.interfaces.clock import IClock
from taskaway.interfaces.task_repository import ITaskRepository
from taskaway.models.enums import RecurrencePattern, TaskStatus
from taskaway.models.task import Task, TaskCreate
from taskaway.services.recurrence_policy import period_bucket_for
from taskaway.utils.datetime_utils import day_bucket, ensure_utc

logger = setup_logger(__name__)


class InstanceMaterializer:
    """Persists new instances of recurring templates."""

    def __init__(self, task_repo: ITaskRepository, clock: IClock):
        self._task_repo = task_repo
        self._clock = clock

    @staticmethod
    def _bucket_for(template: Task, now: datetime) -> str:
        try:
            return period_bucket_for(RecurrencePattern(template.recurrence.pattern), now)
        except (AttributeError, ValueError):
            return day_bucket(now)

    async def create_instance(
        self,
        template: Task,
        now: Optional[datetime] = None,
        period_bucket: Optional[str] = None,
    ) -> Task:
        """
        Create and persist a new instance of a template.

        Args:
            template: Recurring template to copy from
            now: Creation instant (defaults to the clock)
            period_bucket: Generation period key; derived from the template's
                pattern when omitted

        Returns:
            The created instance

        Raises:
            DuplicateError: If the template already has an instance in the period
        """
        now = ensure_utc(now) if now else self._clock.now()
        bucket = period_bucket or self._bucket_for(template, now)

        instance = await self._task_repo.create(
            TaskCreate(
                title=template.title,
                description=template.description,
                owner_id=template.owner_id,
                assigned_to=template.assigned_to,
                assigned_role=template.assigned_role,
                credit_cost=template.credit_cost,
                due_date=template.due_date,
                status=TaskStatus.SUBMITTED,
                is_recurring=False,
                parent_template_id=template.id,
                period_bucket=bucket,
                files=[],
            ),
            created_at=now,
        )

        if template.first_generated_instance_id is None:
            linked = await self._task_repo.set_first_generated_instance(template.id, instance.id)
            if linked:
                template.first_generated_instance_id = instance.id

        logger.info(f"Created recurring task instance {instance.id} for template {template.id}")
        return instance
