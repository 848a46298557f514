"""
Recurrence policy evaluator.

Decides whether a recurring template is due to produce a new instance at a
given instant. The decision itself is a pure function of the template's
recurrence config, a snapshot of its instance history and "now"; the
RecurrencePolicyEvaluator class only loads that snapshot from storage.

Besides the pattern rules, every template is limited to one instance per
period bucket (calendar day, or calendar month for Monthly) so that a sweep
that runs twice, or a manual trigger racing the daily timer, cannot generate
the same occurrence twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from taskaway.core.exceptions import RecurrenceConfigError
from taskaway.core.logger import setup_logger
from taskaway.interfaces.clock import IClock
from taskaway.interfaces.task_repository import ITaskRepository
from taskaway.models.enums import EndType, MonthlyOrdinal, RecurrencePattern, Weekday
from taskaway.models.recurrence import RecurrenceConfig
from taskaway.models.scheduler import GenerationDecision
from taskaway.models.task import Task
from taskaway.utils.datetime_utils import (
    day_bucket,
    ensure_utc,
    month_bucket,
    months_between,
    nth_weekday_of_month,
    start_of_week,
    whole_days_between,
    whole_weeks_between,
)

logger = setup_logger(__name__)

WEEKDAY_PATTERNS = (
    RecurrencePattern.WEEKLY,
    RecurrencePattern.BIWEEKLY,
    RecurrencePattern.THREE_DAYS_A_WEEK,
)
BIWEEKLY_MIN_WEEKS = 2
THREE_DAYS_A_WEEK_CAP = 3


@dataclass(frozen=True)
class InstanceHistory:
    """What the evaluator needs to know about a template's past instances."""

    last_created_at: Optional[datetime] = None
    total_count: int = 0
    count_this_week: int = 0


@dataclass(frozen=True)
class ResolvedRecurrence:
    """A RecurrenceConfig with enums resolved and defaults applied."""

    pattern: RecurrencePattern
    daily_interval: int
    weekdays: frozenset[int]
    monthly_day_of_month: Optional[int]
    monthly_ordinal: Optional[MonthlyOrdinal]
    monthly_weekday: Optional[int]
    monthly_interval: int
    start_date: Optional[datetime]
    end_type: EndType
    end_date: Optional[datetime]
    end_after_count: Optional[int]


@dataclass(frozen=True)
class PolicyOutcome:
    should_generate: bool
    reason: str


# ===========================================
# Config resolution
# ===========================================


def _parse_weekday(value: str, field: str) -> int:
    try:
        return Weekday(value).iso_index
    except ValueError:
        raise RecurrenceConfigError(f"Unknown weekday {value!r} in {field}")


def resolve_config(config: Optional[RecurrenceConfig]) -> ResolvedRecurrence:
    """
    Validate a recurrence config and apply defaults.

    Raises:
        RecurrenceConfigError: If the config is missing or unusable
    """
    if config is None:
        raise RecurrenceConfigError("No recurrence settings found")

    try:
        pattern = RecurrencePattern(config.pattern)
    except ValueError:
        raise RecurrenceConfigError(f"Unknown recurrence pattern: {config.pattern!r}")

    daily_interval = config.daily_interval if config.daily_interval is not None else 1
    if daily_interval < 1:
        raise RecurrenceConfigError(f"daily_interval must be positive, got {daily_interval}")

    weekdays: frozenset[int] = frozenset()
    if pattern in WEEKDAY_PATTERNS:
        if not config.weekly_days:
            raise RecurrenceConfigError(f"No weekly days specified for {pattern.value} pattern")
        weekdays = frozenset(_parse_weekday(day, "weekly_days") for day in config.weekly_days)

    monthly_interval = config.monthly_interval if config.monthly_interval is not None else 1
    ordinal: Optional[MonthlyOrdinal] = None
    monthly_weekday: Optional[int] = None
    if pattern == RecurrencePattern.MONTHLY:
        if monthly_interval < 1:
            raise RecurrenceConfigError(
                f"monthly_interval must be positive, got {monthly_interval}"
            )
        has_day = config.monthly_day_of_month is not None
        has_ordinal = config.monthly_ordinal is not None or config.monthly_weekday is not None
        if has_day and has_ordinal:
            raise RecurrenceConfigError(
                "monthly_day_of_month and monthly_ordinal/monthly_weekday are mutually exclusive"
            )
        if not has_day and not has_ordinal:
            raise RecurrenceConfigError(
                "Monthly pattern needs monthly_day_of_month or monthly_ordinal + monthly_weekday"
            )
        if has_day and not 1 <= config.monthly_day_of_month <= 31:
            raise RecurrenceConfigError(
                f"monthly_day_of_month must be 1-31, got {config.monthly_day_of_month}"
            )
        if has_ordinal:
            if config.monthly_ordinal is None or config.monthly_weekday is None:
                raise RecurrenceConfigError(
                    "monthly_ordinal and monthly_weekday must be set together"
                )
            try:
                ordinal = MonthlyOrdinal(config.monthly_ordinal)
            except ValueError:
                raise RecurrenceConfigError(
                    f"Unknown monthly ordinal: {config.monthly_ordinal!r}"
                )
            monthly_weekday = _parse_weekday(config.monthly_weekday, "monthly_weekday")

    if config.end_type == EndType.END_BY and config.end_date is None:
        raise RecurrenceConfigError("endBy recurrence requires end_date")
    if config.end_type == EndType.END_AFTER and (
        config.end_after_count is None or config.end_after_count < 1
    ):
        raise RecurrenceConfigError("endAfter recurrence requires a positive end_after_count")

    return ResolvedRecurrence(
        pattern=pattern,
        daily_interval=daily_interval,
        weekdays=weekdays,
        monthly_day_of_month=config.monthly_day_of_month if pattern == RecurrencePattern.MONTHLY else None,
        monthly_ordinal=ordinal,
        monthly_weekday=monthly_weekday,
        monthly_interval=monthly_interval,
        start_date=ensure_utc(config.start_date),
        end_type=config.end_type,
        end_date=ensure_utc(config.end_date),
        end_after_count=config.end_after_count,
    )


def period_bucket_for(pattern: RecurrencePattern, now: datetime) -> str:
    """Key of the generation period containing now for a pattern."""
    if pattern == RecurrencePattern.MONTHLY:
        return month_bucket(now)
    return day_bucket(now)


# ===========================================
# Pattern policies
# ===========================================


def _already_generated(rec: ResolvedRecurrence, history: InstanceHistory, now: datetime) -> bool:
    return period_bucket_for(rec.pattern, history.last_created_at) == period_bucket_for(
        rec.pattern, now
    )


def _daily(rec: ResolvedRecurrence, history: InstanceHistory, now: datetime) -> PolicyOutcome:
    if history.last_created_at is None:
        return PolicyOutcome(True, "first instance")
    if _already_generated(rec, history, now):
        return PolicyOutcome(False, "already generated in current period")
    days = whole_days_between(history.last_created_at, now)
    if days < rec.daily_interval:
        return PolicyOutcome(False, f"{days} of {rec.daily_interval} days elapsed")
    return PolicyOutcome(True, f"{days} days since last instance")


def _weekly(rec: ResolvedRecurrence, history: InstanceHistory, now: datetime) -> PolicyOutcome:
    if now.weekday() not in rec.weekdays:
        return PolicyOutcome(False, "weekday not scheduled")
    if history.last_created_at is None:
        return PolicyOutcome(True, "first instance")
    if _already_generated(rec, history, now):
        return PolicyOutcome(False, "already generated in current period")
    return PolicyOutcome(True, "scheduled weekday")


def _biweekly(rec: ResolvedRecurrence, history: InstanceHistory, now: datetime) -> PolicyOutcome:
    if now.weekday() not in rec.weekdays:
        return PolicyOutcome(False, "weekday not scheduled")
    if history.last_created_at is None:
        return PolicyOutcome(True, "first instance")
    if _already_generated(rec, history, now):
        return PolicyOutcome(False, "already generated in current period")
    weeks = whole_weeks_between(history.last_created_at, now)
    if weeks < BIWEEKLY_MIN_WEEKS:
        return PolicyOutcome(False, f"{weeks} of {BIWEEKLY_MIN_WEEKS} weeks elapsed")
    return PolicyOutcome(True, f"{weeks} weeks since last instance")


def _three_days_a_week(
    rec: ResolvedRecurrence, history: InstanceHistory, now: datetime
) -> PolicyOutcome:
    if now.weekday() not in rec.weekdays:
        return PolicyOutcome(False, "weekday not scheduled")
    if history.last_created_at is None:
        return PolicyOutcome(True, "first instance")
    if _already_generated(rec, history, now):
        return PolicyOutcome(False, "already generated in current period")
    if history.count_this_week >= THREE_DAYS_A_WEEK_CAP:
        return PolicyOutcome(False, f"weekly cap of {THREE_DAYS_A_WEEK_CAP} reached")
    return PolicyOutcome(True, f"{history.count_this_week} instances this week")


def _monthly(rec: ResolvedRecurrence, history: InstanceHistory, now: datetime) -> PolicyOutcome:
    if rec.monthly_day_of_month is not None:
        if now.day != rec.monthly_day_of_month:
            return PolicyOutcome(False, "not the scheduled day of month")
    else:
        target = nth_weekday_of_month(
            now.year, now.month, rec.monthly_ordinal.value, rec.monthly_weekday
        )
        if target != now.date():
            return PolicyOutcome(False, f"not the {rec.monthly_ordinal.value} weekday of month")

    if history.last_created_at is None:
        return PolicyOutcome(True, "first instance")
    if _already_generated(rec, history, now):
        return PolicyOutcome(False, "already generated in current period")
    months = months_between(history.last_created_at, now)
    if months < rec.monthly_interval:
        return PolicyOutcome(False, f"{months} of {rec.monthly_interval} months elapsed")
    return PolicyOutcome(True, f"{months} months since last instance")


_POLICIES: dict[
    RecurrencePattern,
    Callable[[ResolvedRecurrence, InstanceHistory, datetime], PolicyOutcome],
] = {
    RecurrencePattern.DAILY: _daily,
    RecurrencePattern.WEEKLY: _weekly,
    RecurrencePattern.BIWEEKLY: _biweekly,
    RecurrencePattern.THREE_DAYS_A_WEEK: _three_days_a_week,
    RecurrencePattern.MONTHLY: _monthly,
}


def evaluate(
    config: Optional[RecurrenceConfig],
    history: InstanceHistory,
    now: datetime,
    fallback_start: Optional[datetime] = None,
) -> PolicyOutcome:
    """
    Decide whether an instance is due at now.

    Args:
        config: Template recurrence settings
        history: Snapshot of the template's existing instances
        now: Evaluation instant
        fallback_start: Used as start date when the config has none
            (normally the template's created_at)

    Raises:
        RecurrenceConfigError: If the config is missing or unusable
    """
    return _evaluate_resolved(resolve_config(config), history, now, fallback_start)


def _evaluate_resolved(
    rec: ResolvedRecurrence,
    history: InstanceHistory,
    now: datetime,
    fallback_start: Optional[datetime],
) -> PolicyOutcome:
    now = ensure_utc(now)
    history = InstanceHistory(
        last_created_at=ensure_utc(history.last_created_at),
        total_count=history.total_count,
        count_this_week=history.count_this_week,
    )

    start = rec.start_date or ensure_utc(fallback_start)
    if start is not None and now < start:
        return PolicyOutcome(False, "before start date")

    if rec.end_type == EndType.END_BY and now > rec.end_date:
        return PolicyOutcome(False, "past end date")

    if rec.end_type == EndType.END_AFTER and history.total_count >= rec.end_after_count:
        return PolicyOutcome(False, f"end count of {rec.end_after_count} reached")

    return _POLICIES[rec.pattern](rec, history, now)


# ===========================================
# Storage-backed evaluator
# ===========================================


class RecurrencePolicyEvaluator:
    """Evaluates templates against their stored instance history."""

    def __init__(self, task_repo: ITaskRepository, clock: IClock):
        self._task_repo = task_repo
        self._clock = clock

    async def load_history(
        self, template: Task, rec: ResolvedRecurrence, now: datetime
    ) -> InstanceHistory:
        """Query only the history fields the template's policy looks at."""
        latest = await self._task_repo.get_latest_instance(template.id)

        total_count = 0
        if rec.end_type == EndType.END_AFTER:
            total_count = await self._task_repo.count_instances(template.id)

        count_this_week = 0
        if rec.pattern == RecurrencePattern.THREE_DAYS_A_WEEK and latest is not None:
            week_start = start_of_week(now)
            count_this_week = await self._task_repo.count_instances(
                template.id,
                created_from=week_start,
                created_before=week_start + timedelta(days=7),
            )

        return InstanceHistory(
            last_created_at=latest.created_at if latest else None,
            total_count=total_count,
            count_this_week=count_this_week,
        )

    async def explain(self, template: Task, now: Optional[datetime] = None) -> GenerationDecision:
        """Evaluate a template and report the reason behind the decision."""
        now = ensure_utc(now) if now else self._clock.now()
        try:
            rec = resolve_config(template.recurrence)
            history = await self.load_history(template, rec, now)
            outcome = _evaluate_resolved(rec, history, now, template.created_at)
        except RecurrenceConfigError as exc:
            logger.warning(f"Skipping recurring task {template.id} ({template.title}): {exc.message}")
            return GenerationDecision(
                template_id=str(template.id),
                should_generate=False,
                reason=f"invalid configuration: {exc.message}",
                invalid_config=True,
                evaluated_at=now,
            )

        return GenerationDecision(
            template_id=str(template.id),
            should_generate=outcome.should_generate,
            reason=outcome.reason,
            period_bucket=period_bucket_for(rec.pattern, now),
            evaluated_at=now,
        )

    async def should_generate(self, template: Task, now: Optional[datetime] = None) -> bool:
        """True if a new instance of the template is due at now."""
        decision = await self.explain(template, now)
        return decision.should_generate
