"""
SQLite implementation of Task repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import pydantic
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError

from taskaway.core.exceptions import DuplicateError
from taskaway.core.logger import setup_logger
from taskaway.infrastructure.local.database import TaskORM, get_session_factory
from taskaway.interfaces.task_repository import ITaskRepository
from taskaway.models.enums import TaskStatus
from taskaway.models.recurrence import RecurrenceConfig
from taskaway.models.task import Task, TaskCreate, TaskFile
from taskaway.utils.datetime_utils import ensure_utc, now_utc, to_naive_utc

logger = setup_logger(__name__)


class SqliteTaskRepository(ITaskRepository):
    """SQLite implementation of task repository."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    def _parse_recurrence(self, orm: TaskORM) -> Optional[RecurrenceConfig]:
        if not orm.recurrence:
            return None
        try:
            return RecurrenceConfig.model_validate(orm.recurrence)
        except pydantic.ValidationError as exc:
            # Leave it to the evaluator to report the template as misconfigured
            logger.warning(f"Unreadable recurrence settings on task {orm.id}: {exc}")
            return None

    def _rows_to_models(self, rows) -> list[Task]:
        """Convert rows one at a time, skipping any that no longer validate."""
        tasks = []
        for orm in rows:
            try:
                tasks.append(self._orm_to_model(orm))
            except (pydantic.ValidationError, ValueError) as exc:
                logger.warning(f"Skipping unreadable task {orm.id}: {exc}")
        return tasks

    def _orm_to_model(self, orm: TaskORM) -> Task:
        """Convert ORM object to Pydantic model."""
        return Task(
            id=UUID(orm.id),
            owner_id=orm.owner_id,
            title=orm.title,
            description=orm.description,
            status=TaskStatus(orm.status),
            assigned_to=orm.assigned_to,
            assigned_role=orm.assigned_role,
            credit_cost=orm.credit_cost or 1,
            due_date=ensure_utc(orm.due_date),
            files=[TaskFile.model_validate(f) for f in (orm.files or [])],
            is_recurring=bool(orm.is_recurring),
            recurrence=self._parse_recurrence(orm),
            parent_template_id=UUID(orm.parent_template_id) if orm.parent_template_id else None,
            first_generated_instance_id=(
                UUID(orm.first_generated_instance_id) if orm.first_generated_instance_id else None
            ),
            period_bucket=orm.period_bucket,
            is_archived=bool(orm.is_archived),
            created_at=ensure_utc(orm.created_at),
            updated_at=ensure_utc(orm.updated_at),
        )

    async def create(self, task: TaskCreate, created_at: Optional[datetime] = None) -> Task:
        """Create a new task."""
        timestamp = to_naive_utc(created_at or now_utc())
        recurrence = task.recurrence
        async with self._session_factory() as session:
            orm = TaskORM(
                id=str(uuid4()),
                owner_id=task.owner_id,
                title=task.title,
                description=task.description,
                status=task.status.value,
                assigned_to=task.assigned_to,
                assigned_role=task.assigned_role,
                credit_cost=task.credit_cost,
                due_date=to_naive_utc(task.due_date),
                files=[f.model_dump(mode="json") for f in task.files],
                is_recurring=task.is_recurring,
                recurrence=recurrence.model_dump(mode="json") if recurrence else None,
                recurrence_end_date=(
                    to_naive_utc(recurrence.effective_end_date) if recurrence else None
                ),
                parent_template_id=str(task.parent_template_id) if task.parent_template_id else None,
                period_bucket=task.period_bucket,
                is_archived=task.is_archived,
                created_at=timestamp,
                updated_at=timestamp,
            )
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateError(
                    f"Instance for template {task.parent_template_id} "
                    f"already exists in period {task.period_bucket}",
                    details={
                        "parent_template_id": str(task.parent_template_id),
                        "period_bucket": task.period_bucket,
                    },
                ) from exc
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        async with self._session_factory() as session:
            result = await session.execute(select(TaskORM).where(TaskORM.id == str(task_id)))
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list_active_templates(self, now: datetime) -> list[Task]:
        """List root recurring templates that may still produce instances."""
        async with self._session_factory() as session:
            query = select(TaskORM).where(
                and_(
                    TaskORM.is_recurring.is_(True),
                    TaskORM.is_archived.is_not(True),
                    TaskORM.parent_template_id.is_(None),
                    or_(
                        TaskORM.recurrence_end_date.is_(None),
                        TaskORM.recurrence_end_date >= to_naive_utc(now),
                    ),
                )
            )
            query = query.order_by(TaskORM.created_at.asc())
            result = await session.execute(query)
            return self._rows_to_models(result.scalars().all())

    async def get_latest_instance(self, template_id: UUID) -> Optional[Task]:
        """Most recently created instance of a template."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskORM)
                .where(TaskORM.parent_template_id == str(template_id))
                .order_by(TaskORM.created_at.desc())
                .limit(1)
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def count_instances(
        self,
        template_id: UUID,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> int:
        """Count instances of a template, optionally within a created_at window."""
        async with self._session_factory() as session:
            conditions = [TaskORM.parent_template_id == str(template_id)]
            if created_from is not None:
                conditions.append(TaskORM.created_at >= to_naive_utc(created_from))
            if created_before is not None:
                conditions.append(TaskORM.created_at < to_naive_utc(created_before))
            result = await session.execute(
                select(func.count()).select_from(TaskORM).where(and_(*conditions))
            )
            return int(result.scalar_one())

    async def list_by_status_updated_before(
        self, status: TaskStatus, threshold: datetime
    ) -> list[Task]:
        """List tasks in a status whose updated_at is at or before threshold."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskORM)
                .where(
                    and_(
                        TaskORM.status == status.value,
                        TaskORM.updated_at <= to_naive_utc(threshold),
                    )
                )
                .order_by(TaskORM.updated_at.asc())
            )
            return self._rows_to_models(result.scalars().all())

    async def transition_status(
        self,
        task_id: UUID,
        from_status: TaskStatus,
        to_status: TaskStatus,
        updated_at: datetime,
    ) -> bool:
        """Conditionally move a task from one status to another."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(TaskORM)
                .where(
                    and_(
                        TaskORM.id == str(task_id),
                        TaskORM.status == from_status.value,
                    )
                )
                .values(status=to_status.value, updated_at=to_naive_utc(updated_at))
            )
            await session.commit()
            return result.rowcount == 1

    async def set_first_generated_instance(self, template_id: UUID, instance_id: UUID) -> bool:
        """Set the template's first instance reference if it is still empty."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(TaskORM)
                .where(
                    and_(
                        TaskORM.id == str(template_id),
                        TaskORM.first_generated_instance_id.is_(None),
                    )
                )
                .values(first_generated_instance_id=str(instance_id))
            )
            await session.commit()
            return result.rowcount == 1
