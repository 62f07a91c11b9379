"""Clocks behind the cooperative deadline checks of a prune run.

The engine ticks once per file and once per class. ``MonotonicClock`` leaves
the budget to the wall-clock ``Deadline``; ``GasMeter`` counts ticks so that
tests and CI runs stop at the same class every time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
import time

from ctorprune.invariants import never


class DeadlineClock(Protocol):
    def consume(self, ticks: int = 1) -> None:
        """Record ``ticks`` units of progress."""

    def get_mark(self) -> int:
        """Current position of the clock, reported in timeout payloads."""


class DeadlineClockExhausted(RuntimeError):
    """A logical clock ran out of ticks."""


@dataclass(frozen=True)
class MonotonicClock:
    def consume(self, ticks: int = 1) -> None:
        return

    def get_mark(self) -> int:
        return time.monotonic_ns()


@dataclass
class GasMeter:
    """Tick budget; the tick that reaches ``limit`` raises."""

    limit: int
    current: int = 0

    def __post_init__(self) -> None:
        if self.limit <= 0:
            never("gas meter needs a positive limit", limit=self.limit)
        if self.current < 0:
            never("gas meter cannot start below zero", current=self.current)

    @property
    def remaining(self) -> int:
        return max(self.limit - self.current, 0)

    def consume(self, ticks: int = 1) -> None:
        if ticks <= 0:
            never("gas meter ticks must be positive", ticks=ticks)
        self.current += ticks
        if not self.remaining:
            raise DeadlineClockExhausted(f"tick budget spent: {self.current}/{self.limit}")

    def get_mark(self) -> int:
        return self.current
