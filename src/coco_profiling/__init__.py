"""coco-profiling: Embeddable timers, timing statistics, and trace-file instrumentation.

Provides:
- ElapsedTimer: Stopwatch with start/pause/resume/stop and accumulated time
- TimerRegistry: Named timers managed by name, feeding one statistics logger
- TimerStatistics / TimerDataLogger: Mean, variance, median, min/max and text report
- Instrumentor / InstrumentationTimer: Trace Event Format JSON output
- DurationUnit: Runtime unit tag (nanoseconds .. hours)

Usage:
    from coco_profiling import Instrumentor, TimerRegistry

    registry = TimerRegistry()
    with registry.timer("load"):
        load()
    registry.log_statistics("load_stats.txt")

    instrumentor = Instrumentor()
    with instrumentor.session("run", "trace.json"):
        with instrumentor.profile_scope("step"):
            step()
"""

from coco_profiling._config import ProfilingConfig
from coco_profiling._errors import (
    DuplicateTimerError,
    PreconditionPolicy,
    ProfilingError,
    ProfilingIOError,
    StatisticsFileError,
    TimerPreconditionError,
    TraceFileError,
    UnknownTimerError,
)
from coco_profiling._instrumentation import (
    InstrumentationTimer,
    Instrumentor,
    ProfileResult,
)
from coco_profiling._registry import TimerRegistry
from coco_profiling._statistics import TimerDataLogger, TimerStatistics
from coco_profiling._timer import ElapsedTimer, scope_timer
from coco_profiling._units import DurationUnit

__all__ = [
    "DuplicateTimerError",
    "DurationUnit",
    "ElapsedTimer",
    "InstrumentationTimer",
    "Instrumentor",
    "PreconditionPolicy",
    "ProfileResult",
    "ProfilingConfig",
    "ProfilingError",
    "ProfilingIOError",
    "StatisticsFileError",
    "TimerDataLogger",
    "TimerPreconditionError",
    "TimerRegistry",
    "TimerStatistics",
    "TraceFileError",
    "UnknownTimerError",
    "scope_timer",
]

__version__ = "0.1.0"
