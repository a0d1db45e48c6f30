"""Millisecond tick counter with wraparound-safe arithmetic."""

from __future__ import annotations

import time
from typing import Protocol

from .const import TICKS_PERIOD


def ticks_diff(end: int, start: int, period: int = TICKS_PERIOD) -> int:
    """Return milliseconds elapsed from start to end.

    Unsigned modular subtraction: correct across one counter wrap, the same
    way ``millis() - last`` behaves on the device.
    """
    return (end - start) % period


class Clock(Protocol):
    """Source of millisecond ticks."""

    def ticks_ms(self) -> int:
        """Return the current tick count."""


class MonotonicClock:
    """Tick source backed by time.monotonic(), truncated to the counter width."""

    def __init__(self, period: int = TICKS_PERIOD) -> None:
        self._period = period

    def ticks_ms(self) -> int:
        return int(time.monotonic() * 1000) % self._period
