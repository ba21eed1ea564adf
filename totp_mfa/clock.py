from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Union

from .errors import InvalidConfigurationError

DEFAULT_STEP_SECONDS = 30

Instant = Union[datetime, int, float]


def epoch_seconds(when: Instant) -> float:
    if isinstance(when, datetime):
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return when.timestamp()
    return float(when)


def _check_step(step_seconds: int) -> int:
    step = int(step_seconds)
    if step <= 0:
        raise InvalidConfigurationError("step_seconds must be positive")
    return step


def counter_at(when: Instant, step_seconds: int = DEFAULT_STEP_SECONDS) -> int:
    """Return floor(epoch_seconds(when) / step_seconds).

    Naive datetimes are read as UTC.
    """
    step = _check_step(step_seconds)
    t = epoch_seconds(when)
    if t < 0:
        raise InvalidConfigurationError("time precedes the unix epoch")
    return int(t // step)


class CounterClock:
    """Source of "now" for verification.

    Tests pass a fixed ``time_source`` instead of reading the wall clock.
    """

    def __init__(self, time_source: Callable[[], float] = time.time) -> None:
        self._time_source = time_source

    def now(self) -> float:
        return float(self._time_source())

    def counter(self, step_seconds: int = DEFAULT_STEP_SECONDS) -> int:
        return counter_at(self.now(), step_seconds)

    def seconds_remaining(self, step_seconds: int = DEFAULT_STEP_SECONDS) -> int:
        step = _check_step(step_seconds)
        return step - int(self.now() % step)
