"""Abstract time provider.

Storing timestamps and backing off between retries both go through this
interface so tests can control the clock.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class Time(ABC):
    """Abstract interface for time operations."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Block for the given number of seconds."""
        ...
