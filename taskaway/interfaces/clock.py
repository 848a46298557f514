"""
Clock interface.

Every "now" the scheduler uses comes from an IClock so tests can pin time.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class IClock(ABC):
    """Abstract time source."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current instant as a timezone-aware UTC datetime."""
        pass
