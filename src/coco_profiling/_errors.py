"""Exception hierarchy and precondition policy.

Two error classes exist:
- Precondition violations (duplicate or unknown timer names) are
  programming errors. ``PreconditionPolicy`` decides whether they raise or
  are logged and ignored; the choice holds under ``python -O`` too.
- I/O failures opening trace or report files are always raised as
  ``ProfilingIOError`` subclasses, chained to the underlying ``OSError``.
"""

from enum import Enum


class ProfilingError(Exception):
    """Base class for every error raised by coco_profiling."""


class TimerPreconditionError(ProfilingError):
    """A registry call violated its name precondition."""


class DuplicateTimerError(TimerPreconditionError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Timer already exists: {name!r}")
        self.name = name


class UnknownTimerError(TimerPreconditionError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No timer named {name!r}")
        self.name = name


class ProfilingIOError(ProfilingError, OSError):
    """Output file could not be opened or written."""


class TraceFileError(ProfilingIOError):
    pass


class StatisticsFileError(ProfilingIOError):
    pass


class PreconditionPolicy(Enum):
    """How a registry reacts to a precondition violation."""

    RAISE = "raise"
    IGNORE = "ignore"
