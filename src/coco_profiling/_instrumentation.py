"""Trace-event instrumentation.

``Instrumentor`` renders ``ProfileResult`` events into one Trace Event
Format JSON document per session, readable by chrome://tracing and
Perfetto. ``InstrumentationTimer`` measures a region and hands exactly one
event to its instrumentor when stopped.

Design by Contract:
- At most one session is open per Instrumentor
- Events are comma-separated; the first event after the header has none
- Every event is flushed as soon as it is written
"""

import functools
import threading
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, TypeVar

from beartype import beartype
from loguru import logger

from coco_profiling._config import ProfilingConfig
from coco_profiling._errors import TraceFileError
from coco_profiling._timer import Clock
from coco_profiling._units import DurationUnit

F = TypeVar("F", bound=Callable[..., Any])

TRACE_HEADER = '{"otherData": {},"traceEvents":['
TRACE_FOOTER = "]}"


@dataclass(frozen=True)
class ProfileResult:
    """One named interval destined for the trace file.

    Attributes:
        name: Event name (double quotes are sanitized on write)
        start: Start timestamp in unit ticks
        end: End timestamp in unit ticks
        thread_id: Identifier of the thread that produced the event
    """

    name: str
    start: int
    end: int
    thread_id: int

    @property
    def duration(self) -> int:
        return self.end - self.start

    def to_json(self) -> str:
        """Serialize as a compact trace event object.

        Only '"' is sanitized (replaced with "'"); no other escaping is done.
        """
        name = self.name.replace('"', "'")
        return (
            '{"cat":"function",'
            f'"dur":{self.duration},'
            f'"name":"{name}",'
            '"ph":"X",'
            '"pid":0,'
            f'"tid":{self.thread_id},'
            f'"ts":{self.start}}}'
        )


class Instrumentor:
    """Writes profile results of one session at a time into a JSON trace file.

    Construct one explicitly and pass it to the timers that report to it.
    Thread-safe: writes from several threads are serialized by a lock.

    Args:
        enabled: If False, profile_scope() and profile_function() do not
            time anything (wrapped code still runs)
        unit: Tick unit for timers created by profile_scope/profile_function
        default_path: Trace file used when begin_session() gets no path

    Example:
        instrumentor = Instrumentor()
        with instrumentor.session("startup", Path("trace.json")):
            with instrumentor.profile_scope("load_config"):
                load_config()
    """

    @beartype
    def __init__(
        self,
        enabled: bool = True,
        unit: DurationUnit = DurationUnit.MICROSECONDS,
        default_path: Path = Path("results.json"),
    ) -> None:
        self.enabled = enabled
        self.unit = unit
        self.default_path = default_path
        self._stream: IO[str] | None = None
        self._session_name: str | None = None
        self._path: Path | None = None
        self._profile_count: int = 0
        self._lock = threading.RLock()

    @classmethod
    @beartype
    def from_config(cls, config: ProfilingConfig) -> "Instrumentor":
        return cls(
            enabled=config.profiling_enabled,
            unit=config.unit,
            default_path=config.trace_path,
        )

    def __enter__(self) -> "Instrumentor":
        return self

    def __exit__(self, *args: Any) -> None:
        if self.is_active:
            self.end_session()

    @beartype
    def begin_session(self, name: str, path: Path | str | None = None) -> None:
        """Open the trace file at path and write the document header.

        A session still open is ended first (footer written, file closed).

        Raises:
            TraceFileError: the file could not be opened.
        """
        target = Path(path) if path is not None else self.default_path
        with self._lock:
            if self._stream is not None:
                logger.warning(
                    f"Trace session {self._session_name!r} still open while beginning "
                    f"{name!r}; ending it first"
                )
                self.end_session()

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                stream = open(target, "w", encoding="utf-8")
            except OSError as exc:
                raise TraceFileError(
                    f"Cannot open trace file {str(target)!r} for session {name!r}: {exc}"
                ) from exc

            self._stream = stream
            self._session_name = name
            self._path = target
            self._profile_count = 0
            self._write(TRACE_HEADER)
            logger.debug(f"Trace session {name!r} started -> {target}")

    def end_session(self) -> None:
        """Write the document footer, close the file and reset the event count."""
        with self._lock:
            if self._stream is None:
                logger.debug("end_session() called with no open trace session")
                return

            self._write(TRACE_FOOTER)
            self._stream.close()
            logger.debug(
                f"Trace session {self._session_name!r} ended with "
                f"{self._profile_count} events -> {self._path}"
            )
            self._stream = None
            self._session_name = None
            self._path = None
            self._profile_count = 0

    @beartype
    def write_profile(self, result: ProfileResult) -> None:
        """Append one event to the open session.

        Events arriving while no session is open are dropped.
        """
        with self._lock:
            if self._stream is None:
                logger.debug(f"No open trace session, dropping event {result.name!r}")
                return

            if self._profile_count > 0:
                self._stream.write(",")
            self._profile_count += 1
            self._write(result.to_json())

    def _write(self, text: str) -> None:
        assert self._stream is not None, "Trace stream must be open to write"
        self._stream.write(text)
        self._stream.flush()

    @property
    def is_active(self) -> bool:
        return self._stream is not None

    @property
    def session_name(self) -> str | None:
        return self._session_name

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def profile_count(self) -> int:
        return self._profile_count

    @contextmanager
    def session(
        self, name: str, path: Path | str | None = None
    ) -> Generator["Instrumentor", None, None]:
        """Context manager wrapping begin_session() / end_session()."""
        self.begin_session(name, path)
        try:
            yield self
        finally:
            self.end_session()

    @contextmanager
    def profile_scope(
        self, name: str
    ) -> Generator["InstrumentationTimer | None", None, None]:
        """Time the enclosed block as one trace event.

        Yields the running InstrumentationTimer, or None when disabled.
        """
        if not self.enabled:
            yield None
            return
        with InstrumentationTimer(self, name, unit=self.unit) as timer:
            yield timer

    def profile_function(self, func: F) -> F:
        """Decorator recording every call of func as a trace event.

        The event is named after the function's module and qualified name.
        """
        event_name = f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not self.enabled:
                return func(*args, **kwargs)
            with InstrumentationTimer(self, event_name, unit=self.unit):
                return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]


class InstrumentationTimer:
    """Stopwatch that reports one ProfileResult to an Instrumentor when stopped.

    The event is forwarded whether or not a session is open; the
    instrumentor decides what to do with it. Started on construction.

    Args:
        instrumentor: Destination of the event
        name: Event name
        unit: Tick unit of timestamps and duration (default: microseconds)
        clock: Monotonic nanosecond clock (default: time.perf_counter_ns)
    """

    @beartype
    def __init__(
        self,
        instrumentor: Instrumentor,
        name: str = "Coco Instrumentation Timer",
        unit: DurationUnit = DurationUnit.MICROSECONDS,
        clock: Clock = time.perf_counter_ns,
    ) -> None:
        self.name = name
        self.instrumentor = instrumentor
        self.unit = unit
        self._clock = clock
        self._time: int = 0
        self._stopped: bool = False
        self._timepoint: int = 0
        self.start()

    def __enter__(self) -> "InstrumentationTimer":
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()

    def start(self) -> None:
        self._time = 0
        self._stopped = False
        self._timepoint = self._clock()

    def reset(self) -> None:
        self.start()

    def stop(self) -> None:
        """Measure the interval and forward it to the instrumentor (first call only)."""
        if self._stopped:
            return
        self._stopped = True
        start = self.unit.ticks(self._timepoint)
        end = self.unit.ticks(self._clock())
        assert end >= start, (
            f"Event end precedes start for {self.name!r}: {start} > {end}. "
            f"Clock went backwards or timing bug."
        )
        self._time += end - start
        self.instrumentor.write_profile(
            ProfileResult(self.name, start, end, threading.get_ident())
        )

    @property
    def time(self) -> int:
        return self._time

    @property
    def is_stopped(self) -> bool:
        return self._stopped
