"""Abstract interfaces for infrastructure collaborators."""

from taskaway.interfaces.clock import IClock
from taskaway.interfaces.task_repository import ITaskRepository

__all__ = [
    "IClock",
    "ITaskRepository",
]
