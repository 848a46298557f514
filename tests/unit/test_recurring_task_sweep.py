"""
Unit tests for RecurringTaskSweep.

The fixed clock starts on Monday 2025-03-10 02:00 UTC.
"""

import asyncio
import gc
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from taskaway.models.enums import EndType
from taskaway.models.task import TaskCreate
from taskaway.services.instance_materializer import InstanceMaterializer
from taskaway.services.recurring_task_sweep import RecurringTaskSweep


class FailingMaterializer(InstanceMaterializer):
    """Materializer whose storage write fails for one template title."""

    def __init__(self, task_repo, clock, failing_title: str):
        super().__init__(task_repo, clock)
        self.failing_title = failing_title

    async def create_instance(self, template, now=None, period_bucket=None):
        if template.title == self.failing_title:
            raise RuntimeError("disk full")
        return await super().create_instance(template, now=now, period_bucket=period_bucket)


@pytest.fixture
def sweep(task_repo, clock):
    return RecurringTaskSweep(task_repo, clock)


@pytest.mark.asyncio
async def test_empty_sweep(sweep):
    """Test a sweep with no templates reports zero counts."""
    result = await sweep.run()

    assert result.processed == 0
    assert result.created == 0
    assert result.started_at == datetime(2025, 3, 10, 2, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_weekly_monday_scenario(task_repo, sweep, make_template, clock):
    """Test a Monday-only weekly template over eight consecutive daily sweeps."""
    template = await make_template("Weekly", weekly_days=["Monday"])

    result = await sweep.run()
    assert result.created == 1

    first = await task_repo.get_latest_instance(template.id)
    stored = await task_repo.get(template.id)
    assert stored.first_generated_instance_id == first.id
    assert first.status.value == "Submitted"
    assert first.created_at == clock.now()

    # Same-day rerun creates nothing
    rerun = await sweep.run()
    assert rerun.created == 0
    assert rerun.skipped == 1

    for _ in range(6):
        clock.advance(timedelta(days=1))
        result = await sweep.run()
        assert result.created == 0

    clock.advance(timedelta(days=1))
    result = await sweep.run()
    assert result.created == 1

    assert await task_repo.count_instances(template.id) == 2
    stored = await task_repo.get(template.id)
    assert stored.first_generated_instance_id == first.id


@pytest.mark.asyncio
async def test_three_days_a_week_cap(task_repo, sweep, make_template, clock):
    """Test at most three instances per Sunday-start week."""
    template = await make_template(
        "ThreeDaysAWeek", weekly_days=["Monday", "Tuesday", "Wednesday", "Thursday"]
    )

    created = []
    for _ in range(4):
        result = await sweep.run()
        created.append(result.created)
        clock.advance(timedelta(days=1))

    assert created == [1, 1, 1, 0]

    # Friday to Sunday are not scheduled; next Monday starts a new week
    clock.set(datetime(2025, 3, 17, 2, 0, tzinfo=timezone.utc))
    result = await sweep.run()
    assert result.created == 1
    assert await task_repo.count_instances(template.id) == 4


@pytest.mark.asyncio
async def test_daily_interval_over_sweeps(task_repo, sweep, make_template, clock):
    """Test an every-3-days template across a week of sweeps."""
    template = await make_template("Daily", daily_interval=3)

    created = []
    for _ in range(7):
        result = await sweep.run()
        created.append(result.created)
        clock.advance(timedelta(days=1))

    assert created == [1, 0, 0, 1, 0, 0, 1]
    assert await task_repo.count_instances(template.id) == 3


@pytest.mark.asyncio
async def test_end_after_count_stops_generation(task_repo, sweep, make_template, clock):
    """Test an endAfter template stops at its count."""
    template = await make_template("Daily", end_type=EndType.END_AFTER, end_after_count=2)

    for _ in range(4):
        await sweep.run()
        clock.advance(timedelta(days=1))

    assert await task_repo.count_instances(template.id) == 2


@pytest.mark.asyncio
async def test_expired_end_date_is_not_processed(sweep, make_template, clock):
    """Test templates past their end date are excluded by the query."""
    await make_template(
        "Daily", end_type=EndType.END_BY, end_date=clock.now() - timedelta(days=1)
    )

    result = await sweep.run()

    assert result.processed == 0


@pytest.mark.asyncio
async def test_fault_isolation(task_repo, clock, make_template):
    """Test one failing template does not stop the others."""
    healthy = await make_template("Daily", title="healthy")
    broken = await make_template("Daily", title="broken")
    await make_template("Weekly", title="misconfigured")
    sweep = RecurringTaskSweep(
        task_repo,
        clock,
        materializer=FailingMaterializer(task_repo, clock, failing_title="broken"),
    )

    result = await sweep.run()

    assert result.processed == 3
    assert result.created == 1
    assert result.errors == 1
    assert result.invalid == 1
    assert await task_repo.count_instances(healthy.id) == 1
    assert await task_repo.count_instances(broken.id) == 0


@pytest.mark.asyncio
async def test_storage_duplicate_is_counted(task_repo, sweep, make_template):
    """Test an instance written by another process for the same period is reported as duplicate."""
    template = await make_template("Daily")
    # Created late on Sunday by a scheduler that already keyed it to Monday
    await task_repo.create(
        TaskCreate(
            title=template.title,
            owner_id=template.owner_id,
            parent_template_id=template.id,
            period_bucket="D2025-03-10",
        ),
        created_at=datetime(2025, 3, 9, 1, 0, tzinfo=timezone.utc),
    )

    result = await sweep.run()

    assert result.duplicates == 1
    assert result.created == 0
    assert result.errors == 0
    assert await task_repo.count_instances(template.id) == 1


@pytest.mark.asyncio
async def test_overlapping_runs_create_one_instance(task_repo, sweep, make_template):
    """Test two concurrent runs of the same sweep generate a single instance."""
    template = await make_template("Daily")

    first, second = await asyncio.gather(sweep.run(), sweep.run())

    assert first.created + second.created == 1
    assert await task_repo.count_instances(template.id) == 1


@pytest.mark.asyncio
async def test_query_failure_propagates(clock):
    """Test a failing template query fails the whole sweep."""
    repo = AsyncMock()
    repo.list_active_templates.side_effect = RuntimeError("database unavailable")
    sweep = RecurringTaskSweep(repo, clock)

    with pytest.raises(RuntimeError, match="database unavailable"):
        await sweep.run()


@pytest.mark.asyncio
async def test_corrupt_template_row_does_not_stop_sweep(
    task_repo, session_factory, sweep, make_template
):
    """Test a template row that fails validation is skipped and the rest are processed."""
    from sqlalchemy import update

    from taskaway.infrastructure.local.database import TaskORM

    healthy = await make_template("Daily", title="healthy")
    corrupt = await make_template("Daily", title="corrupt")
    async with session_factory() as session:
        await session.execute(
            update(TaskORM).where(TaskORM.id == str(corrupt.id)).values(credit_cost=3)
        )
        await session.commit()

    result = await sweep.run()

    assert result.processed == 1
    assert result.created == 1
    assert await task_repo.count_instances(healthy.id) == 1
    assert await task_repo.count_instances(corrupt.id) == 0


@pytest.mark.asyncio
async def test_template_locks_are_released_after_run(sweep, make_template):
    """Test per-template locks do not accumulate across sweeps."""
    await make_template("Daily", title="first")
    await make_template("Daily", title="second")

    await sweep.run()
    gc.collect()

    assert len(sweep._template_locks) == 0
