"""Process-wide monotonic timestamps."""

from datetime import datetime, timedelta, timezone
from typing import Callable

# PostgreSQL TIMESTAMPTZ resolution
_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MonotonicClock:
    """Hands out strictly increasing UTC timestamps.

    Wall-clock readings that do not advance past the previous value (equal
    readings or the system clock stepping backwards) are bumped by one
    microsecond, so every timestamp issued by one clock sorts after the
    ones before it.
    """

    def __init__(self, source: Callable[[], datetime] = utcnow):
        self._source = source
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = self._source()
        if self._last is not None and current <= self._last:
            current = self._last + _TICK
        self._last = current
        return current
