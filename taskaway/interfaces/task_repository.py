"""
Task repository interface.

Defines the contract the scheduler needs from task storage: template lookup,
instance history queries, instance creation and the two single-field updates
it is allowed to make (first-instance back-reference and auto-close).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from taskaway.models.enums import TaskStatus
from taskaway.models.task import Task, TaskCreate


class ITaskRepository(ABC):
    """Abstract interface for task persistence."""

    @abstractmethod
    async def create(self, task: TaskCreate, created_at: Optional[datetime] = None) -> Task:
        """
        Create a new task.

        Args:
            task: Task creation data
            created_at: Creation timestamp (defaults to the current time)

        Returns:
            Created task with generated ID and timestamps

        Raises:
            DuplicateError: If an instance already exists for the same
                template and period bucket
        """
        pass

    @abstractmethod
    async def get(self, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        pass

    @abstractmethod
    async def list_active_templates(self, now: datetime) -> list[Task]:
        """
        List root recurring templates that may still produce instances.

        Includes tasks with is_recurring=True, not archived, without a parent
        template, whose recurrence end date is absent or not before now.
        """
        pass

    @abstractmethod
    async def get_latest_instance(self, template_id: UUID) -> Optional[Task]:
        """Most recently created instance of a template, if any."""
        pass

    @abstractmethod
    async def count_instances(
        self,
        template_id: UUID,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> int:
        """
        Count instances of a template.

        Args:
            template_id: Parent template ID
            created_from: Inclusive lower bound on created_at
            created_before: Exclusive upper bound on created_at
        """
        pass

    @abstractmethod
    async def list_by_status_updated_before(
        self, status: TaskStatus, threshold: datetime
    ) -> list[Task]:
        """List tasks with the given status whose updated_at <= threshold."""
        pass

    @abstractmethod
    async def transition_status(
        self,
        task_id: UUID,
        from_status: TaskStatus,
        to_status: TaskStatus,
        updated_at: datetime,
    ) -> bool:
        """
        Move a task between statuses if it is still in from_status.

        Returns:
            True if the task was updated, False if it was missing or had
            already left from_status.
        """
        pass

    @abstractmethod
    async def set_first_generated_instance(self, template_id: UUID, instance_id: UUID) -> bool:
        """
        Record the first generated instance on a template.

        Set-once: the update only applies while the template has no value.

        Returns:
            True if this call set the value, False if it was already set.
        """
        pass
