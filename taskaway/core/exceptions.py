"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class TaskawayError(Exception):
    """Base exception for taskaway."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class DuplicateError(TaskawayError):
    """Duplicate resource detected."""

    pass


class ValidationError(TaskawayError):
    """Validation error."""

    pass


class RecurrenceConfigError(ValidationError):
    """Recurrence settings on a template are missing or inconsistent."""

    pass


class SchedulerError(TaskawayError):
    """A scheduler run failed."""

    pass
