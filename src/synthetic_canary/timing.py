"""Injectable time primitives.

Every wait in the package goes through a :data:`Sleeper` and every
wall-clock read through a :data:`Clock`, so tests can substitute
instantaneous fakes.
"""
from __future__ import annotations

import asyncio
import datetime
import time
from collections.abc import Awaitable, Callable

Sleeper = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime.datetime]
MonotonicClock = Callable[[], float]


def utc_now() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


async def default_sleep(seconds: float) -> None:
    await asyncio.sleep(max(0.0, seconds))


def monotonic() -> float:
    return time.monotonic()


class VirtualClock:
    """Simulated time that only advances when something sleeps on it.

    Pass :meth:`sleep`, :meth:`now` and :meth:`monotonic` wherever a
    :data:`Sleeper`, :data:`Clock` or :data:`MonotonicClock` is accepted to
    run a full canary in simulated time.  Every sleep yields to the event
    loop once.
    """

    def __init__(self, start: datetime.datetime | None = None) -> None:
        self._start = start if start is not None else utc_now()
        self._elapsed = 0.0
        self.sleeps: list[float] = []

    @property
    def elapsed(self) -> float:
        """Simulated seconds since construction."""
        return self._elapsed

    async def sleep(self, seconds: float) -> None:
        seconds = max(0.0, seconds)
        self.sleeps.append(seconds)
        self._elapsed += seconds
        await asyncio.sleep(0)

    def now(self) -> datetime.datetime:
        return self._start + datetime.timedelta(seconds=self._elapsed)

    def monotonic(self) -> float:
        return self._elapsed

    def __repr__(self) -> str:
        return f"VirtualClock(elapsed={self._elapsed:.3f}s)"


__all__ = [
    "Clock",
    "MonotonicClock",
    "Sleeper",
    "VirtualClock",
    "default_sleep",
    "monotonic",
    "utc_now",
]
