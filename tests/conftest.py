"""
Shared fixtures.

Each test gets its own SQLite database file and a clock pinned to
Monday 2025-03-10 02:00 UTC (the time the daily sweep normally fires).
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timezone  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from taskaway.infrastructure.local.database import Base  # noqa: E402
from taskaway.infrastructure.local.task_repository import SqliteTaskRepository  # noqa: E402
from taskaway.models.enums import TaskStatus  # noqa: E402
from taskaway.models.recurrence import RecurrenceConfig  # noqa: E402
from taskaway.models.task import Task, TaskCreate  # noqa: E402
from taskaway.utils.clock import FixedClock  # noqa: E402

MONDAY_0200 = datetime(2025, 3, 10, 2, 0, tzinfo=timezone.utc)


@pytest.fixture
async def session_factory(tmp_path):
    """Create a per-test database file with all tables."""
    # A file, not :memory:, so each session gets its own connection
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def task_repo(session_factory):
    return SqliteTaskRepository(session_factory=session_factory)


@pytest.fixture
def clock():
    return FixedClock(MONDAY_0200)


@pytest.fixture
def make_template(task_repo):
    """Factory that stores a recurring template and returns it."""

    async def _make(
        pattern: str = "Daily",
        created_at: Optional[datetime] = None,
        title: str = "Water the plants",
        **recurrence,
    ) -> Task:
        recurrence.setdefault("start_date", datetime(2025, 3, 1, tzinfo=timezone.utc))
        return await task_repo.create(
            TaskCreate(
                title=title,
                description="Recurring chore",
                owner_id="owner-1",
                assigned_to="worker-7",
                assigned_role="Assistant",
                credit_cost=2,
                due_date=datetime(2025, 12, 31, tzinfo=timezone.utc),
                is_recurring=True,
                recurrence=RecurrenceConfig(pattern=pattern, **recurrence),
            ),
            created_at=created_at or datetime(2025, 3, 1, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def make_task(task_repo):
    """Factory for plain (non-recurring) tasks with a chosen status and age."""

    async def _make(status: TaskStatus, updated_at: datetime, title: str = "One-off task") -> Task:
        return await task_repo.create(
            TaskCreate(title=title, owner_id="owner-1", status=status),
            created_at=updated_at,
        )

    return _make
