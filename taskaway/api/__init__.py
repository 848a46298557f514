"""API routers."""

from taskaway.api import scheduler

__all__ = [
    "scheduler",
]
