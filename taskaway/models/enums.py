"""
Enum definitions for the application.

These enums are used across models and provide type-safe status/pattern values.
Values match what is stored in the database and exchanged over the API.
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Task status."""

    SUBMITTED = "Submitted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CLOSED = "Closed"
    PENDING = "Pending"


class RecurrencePattern(str, Enum):
    """How often a recurring template produces instances."""

    DAILY = "Daily"
    WEEKLY = "Weekly"
    BIWEEKLY = "BiWeekly"
    THREE_DAYS_A_WEEK = "ThreeDaysAWeek"
    MONTHLY = "Monthly"


class EndType(str, Enum):
    """When a recurring template stops producing instances."""

    NO_END = "noEnd"
    END_BY = "endBy"
    END_AFTER = "endAfter"


class Weekday(str, Enum):
    """Day of week names as used in recurrence settings."""

    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"

    @property
    def iso_index(self) -> int:
        """Python weekday index (0=Monday ... 6=Sunday)."""
        return _ISO_INDEX[self]


_ISO_INDEX = {
    Weekday.MONDAY: 0,
    Weekday.TUESDAY: 1,
    Weekday.WEDNESDAY: 2,
    Weekday.THURSDAY: 3,
    Weekday.FRIDAY: 4,
    Weekday.SATURDAY: 5,
    Weekday.SUNDAY: 6,
}


class MonthlyOrdinal(str, Enum):
    """Which occurrence of a weekday within a month."""

    FIRST = "first"
    SECOND = "second"
    THIRD = "third"
    FOURTH = "fourth"
    LAST = "last"
