"""
Task model definitions.

Templates and generated instances share one task collection. A template has
is_recurring=True and a recurrence config; an instance points back to its
template through parent_template_id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from taskaway.models.enums import TaskStatus
from taskaway.models.recurrence import RecurrenceConfig


class TaskFile(BaseModel):
    """Attachment metadata. Files are never copied to generated instances."""

    filename: str
    file_key: str
    url: str
    size: int = Field(..., ge=0)
    type: Optional[str] = None
    uploaded_at: Optional[datetime] = None


class TaskBase(BaseModel):
    """Base task fields shared across create/read."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    owner_id: str = Field(..., description="User who created the task")
    assigned_to: Optional[str] = None
    assigned_role: Optional[str] = None
    credit_cost: int = Field(1, ge=1, le=2)
    due_date: Optional[datetime] = None
    is_recurring: bool = False
    recurrence: Optional[RecurrenceConfig] = None
    parent_template_id: Optional[UUID] = None
    is_archived: bool = False
    files: list[TaskFile] = Field(default_factory=list, max_length=12)


class TaskCreate(TaskBase):
    """Create a new task (template or instance)."""

    status: TaskStatus = TaskStatus.SUBMITTED
    period_bucket: Optional[str] = Field(
        None, description="Generation period of an instance (day or month key)"
    )


class Task(TaskBase):
    """Task with metadata."""

    id: UUID
    status: TaskStatus = TaskStatus.SUBMITTED
    first_generated_instance_id: Optional[UUID] = None
    period_bucket: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_template(self) -> bool:
        """Root recurring task that generates instances."""
        return self.is_recurring and self.parent_template_id is None
