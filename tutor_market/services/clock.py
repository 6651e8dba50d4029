"""Time sources. Services take a Clock so deadlines can be tested without waiting 24 hours."""
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """Clock that only moves when advanced."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> datetime:
        """advance(hours=25) etc.; takes timedelta keyword arguments."""
        self._now += timedelta(**kwargs)
        return self._now


system_clock = SystemClock()
