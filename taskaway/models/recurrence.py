"""
Recurrence configuration models.

A RecurrenceConfig is embedded in a recurring template task. Pattern, weekday
and ordinal values are kept as plain strings so that a template with a stale or
unknown value still loads; the recurrence policy evaluator decides whether a
config is usable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from taskaway.models.enums import EndType


class RecurrenceConfig(BaseModel):
    """Recurrence settings attached to a template."""

    pattern: str = Field(..., description="Daily | Weekly | BiWeekly | ThreeDaysAWeek | Monthly")
    daily_interval: Optional[int] = Field(None, description="Days between instances (Daily)")
    weekly_days: list[str] = Field(
        default_factory=list, description="Target weekdays (Weekly/BiWeekly/ThreeDaysAWeek)"
    )
    monthly_day_of_month: Optional[int] = Field(None, description="Day of month (1-31)")
    monthly_ordinal: Optional[str] = Field(None, description="first/second/third/fourth/last")
    monthly_weekday: Optional[str] = Field(
        None, description="Weekday used together with monthly_ordinal"
    )
    monthly_interval: Optional[int] = Field(None, description="Months between instances")
    start_date: Optional[datetime] = Field(
        None, description="No instance is generated before this instant"
    )
    end_type: EndType = EndType.NO_END
    end_date: Optional[datetime] = None
    end_after_count: Optional[int] = None

    @property
    def effective_end_date(self) -> Optional[datetime]:
        """End date that applies to query-time filtering, if any."""
        if self.end_type == EndType.END_BY:
            return self.end_date
        return None
