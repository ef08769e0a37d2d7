"""Registry of named elapsed timers sharing one statistics logger.

Not thread-safe: use one registry per thread, or serialize access to a
shared registry with an external lock.
"""

import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from beartype import beartype
from loguru import logger

from coco_profiling._config import ProfilingConfig
from coco_profiling._errors import (
    DuplicateTimerError,
    PreconditionPolicy,
    TimerPreconditionError,
    UnknownTimerError,
)
from coco_profiling._statistics import TimerDataLogger, TimerStatistics
from coco_profiling._timer import Clock, ElapsedTimer
from coco_profiling._units import DurationUnit


class TimerRegistry:
    """Manages many concurrently tracked regions by name.

    Every timer stopped through the registry contributes its accumulated
    time to the shared TimerDataLogger, in stop order.

    Args:
        unit: Tick unit for all timers and the statistics report
        policy: RAISE fails fast on duplicate/unknown names; IGNORE logs a
            warning and turns the call into a no-op
        print_on_stop: Print flag given to every timer the registry creates
        clock: Monotonic nanosecond clock shared by every timer

    Example:
        registry = TimerRegistry(unit=DurationUnit.MILLISECONDS)
        registry.add_and_start_timer("parse")
        parse()
        registry.stop_timer("parse")
        registry.log_statistics(Path("parse_stats.txt"))
    """

    @beartype
    def __init__(
        self,
        unit: DurationUnit = DurationUnit.MICROSECONDS,
        policy: PreconditionPolicy = PreconditionPolicy.RAISE,
        print_on_stop: bool = False,
        clock: Clock = time.perf_counter_ns,
    ) -> None:
        self.unit = unit
        self.policy = policy
        self.print_on_stop = print_on_stop
        self._clock = clock
        self._timers: dict[str, ElapsedTimer] = {}
        self._logger = TimerDataLogger(unit)

    @classmethod
    @beartype
    def from_config(cls, config: ProfilingConfig) -> "TimerRegistry":
        return cls(
            unit=config.unit,
            policy=config.policy,
            print_on_stop=config.print_on_stop,
        )

    def __contains__(self, name: object) -> bool:
        return name in self._timers

    def __len__(self) -> int:
        return len(self._timers)

    def names(self) -> list[str]:
        return list(self._timers)

    @property
    def data_logger(self) -> TimerDataLogger:
        return self._logger

    @property
    def statistics(self) -> TimerStatistics:
        return self._logger.statistics

    def _violation(self, error: TimerPreconditionError) -> None:
        if self.policy is PreconditionPolicy.RAISE:
            raise error
        logger.warning(f"Ignored timer registry call: {error}")

    def _lookup(self, name: str) -> ElapsedTimer | None:
        timer = self._timers.get(name)
        if timer is None:
            self._violation(UnknownTimerError(name))
        return timer

    @beartype
    def add_and_start_timer(self, name: str) -> None:
        if name in self._timers:
            self._violation(DuplicateTimerError(name))
            return
        self._timers[name] = ElapsedTimer(
            name, unit=self.unit, print_on_stop=self.print_on_stop, clock=self._clock
        )

    @beartype
    def stop_timer(self, name: str) -> None:
        """Stop the named timer and record its time in the shared logger.

        Stopping an already stopped timer records nothing.
        """
        timer = self._lookup(name)
        if timer is not None and timer.stop():
            self._logger.add_measurement(timer.time)

    @beartype
    def pause_timer(self, name: str) -> None:
        timer = self._lookup(name)
        if timer is not None:
            timer.pause()

    @beartype
    def resume_timer(self, name: str) -> None:
        timer = self._lookup(name)
        if timer is not None:
            timer.resume()

    @beartype
    def reset_timer(self, name: str) -> None:
        timer = self._lookup(name)
        if timer is not None:
            timer.reset()

    @beartype
    def remove_timer(self, name: str) -> None:
        if self._lookup(name) is not None:
            del self._timers[name]

    @beartype
    def rename_timer(self, old_name: str, new_name: str) -> None:
        """Re-key a timer, keeping the same instance and its accumulated state.

        The timer's display name is left unchanged.
        """
        if self._lookup(old_name) is None:
            return
        if new_name in self._timers:
            self._violation(DuplicateTimerError(new_name))
            return
        self._timers[new_name] = self._timers.pop(old_name)

    def reset_all_timers(self) -> None:
        for timer in self._timers.values():
            timer.reset()

    def stop_all_timers(self) -> None:
        for name in list(self._timers):
            self.stop_timer(name)

    @beartype
    def get_timer(self, name: str) -> ElapsedTimer | None:
        """Return the named timer (None only under PreconditionPolicy.IGNORE).

        The registry keeps ownership; the handle is not valid after
        remove_timer().
        """
        return self._lookup(name)

    @beartype
    def log_statistics(self, path: Path | str) -> None:
        self._logger.log_statistics(path)

    @contextmanager
    def timer(self, name: str) -> Generator[ElapsedTimer | None, None, None]:
        """Time the enclosed block under name, recording one measurement.

        The entry is removed on exit, so the same name can be timed again
        (for example once per loop iteration). If the name is already taken
        and the policy is IGNORE, yields None and leaves the existing timer
        untouched.
        """
        created = name not in self._timers
        self.add_and_start_timer(name)
        if not created:
            yield None
            return
        try:
            yield self._timers[name]
        finally:
            self.stop_timer(name)
            self.remove_timer(name)
