from __future__ import annotations

import inspect
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, TypeVar

from ctorprune.deadline_clock import (
    DeadlineClock,
    DeadlineClockExhausted,
    MonotonicClock,
)
from ctorprune.invariants import never
from ctorprune.json_types import JSONValue

_LoopItem = TypeVar("_LoopItem")


@dataclass(frozen=True)
class TimeoutContext:
    site: str
    checks: int
    clock_mark: int

    def as_payload(self) -> dict[str, JSONValue]:
        return {
            "site": self.site,
            "checks": self.checks,
            "clock_mark": self.clock_mark,
        }


class TimeoutExceeded(TimeoutError):
    def __init__(self, context: TimeoutContext) -> None:
        super().__init__("Constructor pruning timed out.")
        self.context = context


_SYSTEM_CLOCK = MonotonicClock()


@dataclass(frozen=True)
class Deadline:
    deadline_ns: int

    @classmethod
    def from_timeout_ticks(cls, ticks: int, tick_ns: int) -> "Deadline":
        ticks_value = int(ticks)
        tick_ns_value = int(tick_ns)
        if ticks_value < 0:
            never("invalid timeout ticks", ticks=ticks)
        if tick_ns_value <= 0:
            never("invalid timeout tick_ns", tick_ns=tick_ns)
        total_ns = ticks_value * tick_ns_value
        return cls(deadline_ns=_SYSTEM_CLOCK.get_mark() + total_ns)

    @classmethod
    def from_timeout_ms(cls, milliseconds: int) -> "Deadline":
        return cls.from_timeout_ticks(milliseconds, 1_000_000)

    def expired(self) -> bool:
        return _SYSTEM_CLOCK.get_mark() >= self.deadline_ns

    def check(self, builder: Callable[[], TimeoutContext]) -> None:
        if self.expired():
            raise TimeoutExceeded(builder())


_deadline_var: ContextVar[Deadline | None] = ContextVar("ctorprune_deadline", default=None)
_deadline_clock_var: ContextVar[DeadlineClock | None] = ContextVar(
    "ctorprune_deadline_clock", default=None
)
_check_count_var: ContextVar[int] = ContextVar("ctorprune_deadline_checks", default=0)


def set_deadline(deadline: Deadline):
    return _deadline_var.set(deadline)


def reset_deadline(token) -> None:
    _deadline_var.reset(token)


def get_deadline() -> Deadline:
    deadline = _deadline_var.get()
    if deadline is None:
        never("deadline carrier missing")
    return deadline


def set_deadline_clock(clock: DeadlineClock):
    return _deadline_clock_var.set(clock)


def reset_deadline_clock(token) -> None:
    _deadline_clock_var.reset(token)


def get_deadline_clock() -> DeadlineClock:
    clock = _deadline_clock_var.get()
    if clock is None:
        never("deadline clock missing")
    return clock


@contextmanager
def deadline_scope(deadline: Deadline):
    if deadline is None:
        never("deadline carrier missing")
    token = set_deadline(deadline)
    count_token = _check_count_var.set(0)
    try:
        yield
    finally:
        _check_count_var.reset(count_token)
        reset_deadline(token)


@contextmanager
def deadline_clock_scope(clock: DeadlineClock):
    token = set_deadline_clock(clock)
    try:
        yield
    finally:
        reset_deadline_clock(token)


def _caller_site() -> str:
    frame = inspect.currentframe()
    try:
        caller = frame.f_back.f_back if frame is not None and frame.f_back else None
        if caller is None:
            return "<unknown>"
        code = caller.f_code
        return f"{code.co_filename}:{code.co_name}"
    finally:
        del frame


def check_deadline(deadline: Deadline | None = None) -> None:
    if deadline is None:
        deadline = get_deadline()
    clock = get_deadline_clock()
    checks = _check_count_var.get() + 1
    _check_count_var.set(checks)
    try:
        clock.consume(1)
    except DeadlineClockExhausted:
        raise TimeoutExceeded(
            TimeoutContext(site=_caller_site(), checks=checks, clock_mark=clock.get_mark())
        ) from None
    site = _caller_site()
    deadline.check(
        lambda: TimeoutContext(site=site, checks=checks, clock_mark=clock.get_mark())
    )


def deadline_loop_iter(values: Iterable[_LoopItem]) -> Iterator[_LoopItem]:
    for value in values:
        check_deadline()
        yield value
