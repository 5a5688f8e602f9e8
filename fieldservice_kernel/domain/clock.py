"""
Injectable time source.

Approval timestamps, installation and scheduled dates, and the epoch-millis
part of equipment serial numbers all come from a Clock handed to the
orchestrator.  Nothing in domain/ or services/ reads the system time itself;
SystemClock is the only place that does.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of the current time.  ``now()`` is always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    Starts at Monday 2024-01-01 12:00 UTC unless told otherwise, and only
    moves when ``advance()`` is called.  With the default start a
    two-business-day lead time lands on Wednesday 2024-01-03.
    """

    DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        self._start = fixed_time or self.DEFAULT_START
        self._offset = timedelta()

    def now(self) -> datetime:
        return self._start + self._offset

    def advance(self, seconds: float = 1) -> datetime:
        """Move forward and return the new time."""
        self._offset += timedelta(seconds=seconds)
        return self.now()
