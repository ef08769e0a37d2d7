"""Elapsed-time stopwatch with pause/resume support.

Design by Contract:
- Accumulated time only grows while running and not paused
- Accumulated time MUST be >= 0 (crash if an interval is negative)
- Guard violations (double pause, double stop, resume while running)
  are silent no-ops, never errors
"""

import time
from collections.abc import Callable
from typing import Any

from beartype import beartype
from loguru import logger

from coco_profiling._units import DurationUnit

Clock = Callable[[], int]


class ElapsedTimer:
    """Single-region stopwatch accumulating running time in whole unit ticks.

    Args:
        name: Display name used by the print-on-stop line
        unit: Tick unit of the accumulated time (default: microseconds)
        print_on_stop: If True, stop() logs "<name> : <time> <unit>"
        autostart: If False, the timer is built inert (stopped, zero time)
            until start() is called
        clock: Monotonic nanosecond clock (default: time.perf_counter_ns)

    Example:
        with ElapsedTimer("load", unit=DurationUnit.MILLISECONDS) as timer:
            load()
        print(timer.time)
    """

    @beartype
    def __init__(
        self,
        name: str = "Coco Timer",
        unit: DurationUnit = DurationUnit.MICROSECONDS,
        print_on_stop: bool = True,
        autostart: bool = True,
        clock: Clock = time.perf_counter_ns,
    ) -> None:
        self._name = name
        self._unit = unit
        self._print_on_stop = print_on_stop
        self._clock = clock
        self._time: int = 0
        self._paused: bool = False
        self._stopped: bool = True
        self._started: bool = False
        self._timepoint: int = 0
        if autostart:
            self.start()

    def __enter__(self) -> "ElapsedTimer":
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()

    def __repr__(self) -> str:
        state = "stopped" if self._stopped else ("paused" if self._paused else "running")
        return f"ElapsedTimer({self._name!r}, {self._time} {self._unit.label}, {state})"

    def _interval(self) -> int:
        start = self._unit.ticks(self._timepoint)
        end = self._unit.ticks(self._clock())
        interval = end - start
        assert interval >= 0, (
            f"Timer interval cannot be negative: {interval} {self._unit.label}. "
            f"Clock went backwards or timing bug."
        )
        return interval

    def start(self) -> None:
        """Zero the accumulated time and begin a fresh running interval."""
        self._time = 0
        self._paused = False
        self._stopped = False
        self._started = True
        self._timepoint = self._clock()

    def pause(self) -> None:
        if not self._paused and not self._stopped:
            self._paused = True
            self._time += self._interval()

    def resume(self) -> None:
        if self._paused and not self._stopped:
            self._paused = False
            self._timepoint = self._clock()

    def reset(self) -> None:
        """Return to the initial running state, whatever the current state."""
        self.start()

    def stop(self) -> bool:
        """Close the running interval and freeze the accumulated time.

        Idempotent. A paused timer adds nothing further on stop.

        Returns:
            True if this call stopped the timer, False if it was already stopped.
        """
        if self._stopped:
            return False
        self._stopped = True
        if not self._paused:
            self._time += self._interval()
        if self._print_on_stop:
            logger.info(f"{self._name} : {self._time} {self._unit.label}")
        return True

    @beartype
    def completed_on_time(self, threshold: int) -> bool:
        """True iff the timer ran, is stopped, and its time is within threshold.

        An inert timer that was never started has not completed anything
        and reports False.
        """
        if not self._started or not self._stopped:
            return False
        return threshold >= self._time

    @property
    def name(self) -> str:
        return self._name

    @property
    def unit(self) -> DurationUnit:
        return self._unit

    @property
    def time(self) -> int:
        """Accumulated ticks of closed intervals."""
        return self._time

    @property
    def elapsed(self) -> int:
        """Accumulated ticks including the in-flight interval, if any."""
        if self._stopped or self._paused:
            return self._time
        return self._time + self._interval()

    @property
    def is_running(self) -> bool:
        return not self._stopped

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    @property
    def print_on_stop(self) -> bool:
        return self._print_on_stop

    @print_on_stop.setter
    @beartype
    def print_on_stop(self, state: bool) -> None:
        self._print_on_stop = state


@beartype
def scope_timer(
    name: str | None = None,
    unit: DurationUnit = DurationUnit.MICROSECONDS,
) -> ElapsedTimer:
    """Build a printing timer meant to be used as ``with scope_timer(...):``."""
    return ElapsedTimer(name if name is not None else "Coco Timer", unit=unit)
