from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass
class FakeClock:
    """
    Hand-driven stand-in for ``pitwall.clock.utc_now``.

    Session idle time, confirmation TTLs and "this year" resolution all read
    the clock, so tests pin it inside a season and step it forward with
    ``advance(minutes=6)`` or ``advance(timedelta(...))``. Pass ``clock.now``
    (or the clock itself) wherever a Clock callable is expected.
    """

    current: datetime

    @classmethod
    def fixed(cls, *, year: int = 2026, month: int = 1, day: int = 1) -> FakeClock:
        return cls(current=datetime(year, month, day, tzinfo=timezone.utc))

    @property
    def season(self) -> int:
        return self.current.year

    def now(self) -> datetime:
        return self.current

    __call__ = now

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        self.current += delta if delta is not None else timedelta(**kwargs)
        return self.current
