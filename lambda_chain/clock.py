"""
Lambda Chain - Clock
====================

What:  Time source used by the metrics middleware.
How:   `Clock` is the abstract contract; `SystemClock` reports UTC wall
       time but advances it with the monotonic clock, `FixedClock` always returns the same instant so durations in
       tests are deterministic (zero).
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from time import monotonic


class Clock(ABC):
    """Abstract time source."""

    @abstractmethod
    def now(self) -> datetime:
        """Current instant."""
        ...

    def since(self, t: datetime) -> timedelta:
        """Time elapsed between `t` and `now()`."""
        return self.now() - t


class SystemClock(Clock):
    """
    Timezone-aware UTC clock.

    The wall time is read once, at construction; later readings add the
    monotonic time elapsed since then, so durations never go negative when
    the system clock is stepped.
    """

    def __init__(self):
        self._wall_start = datetime.now(timezone.utc)
        self._mono_start = monotonic()

    def now(self) -> datetime:
        return self._wall_start + timedelta(seconds=monotonic() - self._mono_start)


class FixedClock(Clock):
    """A clock frozen at `instant`."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant
