"""
Schedule calculator -- next valid work date for a new work order.

Architecture position:
    Kernel > Domain -- pure.  ``next_work_date`` is a function of its input
    only; ``ScheduleCalculator`` binds it to an injected Clock.

Rule:
    base + lead_days (default 2).  A Saturday result moves 2 days forward,
    a Sunday result 1 day, so work always lands on a weekday.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import TypeVar

from fieldservice_kernel.domain.clock import Clock, SystemClock

DEFAULT_LEAD_DAYS = 2

_SATURDAY = 5
_SUNDAY = 6

_D = TypeVar("_D", date, datetime)


def next_work_date(base: _D, lead_days: int = DEFAULT_LEAD_DAYS) -> _D:
    """
    Compute the earliest weekday at least ``lead_days`` after ``base``.

    Accepts a ``date`` or a ``datetime`` and returns the same type.

    >>> next_work_date(date(2024, 1, 4))  # Thursday -> Saturday -> Monday
    datetime.date(2024, 1, 8)
    """
    if lead_days < 0:
        raise ValueError(f"lead_days must be >= 0, got {lead_days}")

    result = base + timedelta(days=lead_days)
    weekday = result.weekday()
    if weekday == _SUNDAY:
        result += timedelta(days=1)
    elif weekday == _SATURDAY:
        result += timedelta(days=2)
    return result


class ScheduleCalculator:
    """Applies :func:`next_work_date` to the injected clock."""

    def __init__(self, clock: Clock | None = None, lead_days: int = DEFAULT_LEAD_DAYS):
        self._clock = clock or SystemClock()
        self._lead_days = lead_days

    def next_work_date(self, base: date | datetime | None = None) -> date:
        """Next weekday work date for an order created at ``base`` (default: now)."""
        when = base if base is not None else self._clock.now()
        result = next_work_date(when, self._lead_days)
        if isinstance(result, datetime):
            return result.date()
        return result
