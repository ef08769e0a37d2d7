"""Summary statistics over elapsed-time samples and their text report.

Design by Contract:
- Samples MUST be non-negative integers
- Every aggregate of an empty sample set is 0
- Aggregates are recomputed from the samples on every call
"""

import json
import math
from collections.abc import Iterable
from pathlib import Path

from beartype import beartype
from loguru import logger

from coco_profiling._errors import StatisticsFileError
from coco_profiling._units import DurationUnit

SEPARATOR = "-" * 40


class TimerStatistics:
    """Ordered, clearable set of integer samples with on-demand aggregates.

    Variance is the population variance (divides by N, not N - 1).

    Example:
        stats = TimerStatistics([10, 20, 30])
        stats.mean()      # 20.0
        stats.variance()  # 66.666...
    """

    @beartype
    def __init__(self, samples: Iterable[int] | None = None) -> None:
        self._samples: list[int] = []
        if samples is not None:
            self.extend(samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __repr__(self) -> str:
        return f"TimerStatistics(count={len(self._samples)})"

    @beartype
    def add(self, sample: int) -> None:
        if sample < 0:
            raise ValueError(f"Sample must be non-negative: {sample}")
        self._samples.append(sample)

    @beartype
    def extend(self, samples: Iterable[int]) -> None:
        for sample in samples:
            self.add(sample)

    def clear(self) -> None:
        self._samples.clear()

    @property
    def count(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> tuple[int, ...]:
        """Copy of the samples in arrival order."""
        return tuple(self._samples)

    def mean(self) -> float:
        if not self._samples:
            return 0.0
        return sum(self._samples) / len(self._samples)

    def variance(self) -> float:
        if not self._samples:
            return 0.0
        mean = self.mean()
        return sum((x - mean) ** 2 for x in self._samples) / len(self._samples)

    def standard_deviation(self) -> float:
        return math.sqrt(self.variance())

    def median(self) -> float:
        if not self._samples:
            return 0.0
        ordered = sorted(self._samples)
        mid = len(ordered) // 2
        if len(ordered) % 2 == 0:
            return (ordered[mid - 1] + ordered[mid]) / 2
        return float(ordered[mid])

    def minimum(self) -> int:
        return min(self._samples, default=0)

    def maximum(self) -> int:
        return max(self._samples, default=0)

    def summary(self) -> dict[str, float]:
        """All aggregates in one dict (keys: count, mean, variance,
        standard_deviation, median, min, max)."""
        return {
            "count": float(self.count),
            "mean": self.mean(),
            "variance": self.variance(),
            "standard_deviation": self.standard_deviation(),
            "median": self.median(),
            "min": float(self.minimum()),
            "max": float(self.maximum()),
        }


class TimerDataLogger:
    """Collects measurements and renders their statistics as a report.

    Args:
        unit: Unit label appended to every reported value (default: microseconds)

    Example:
        data_logger = TimerDataLogger(DurationUnit.MILLISECONDS)
        data_logger.add_measurement(12)
        data_logger.log_statistics(Path("timings.txt"))
    """

    @beartype
    def __init__(self, unit: DurationUnit = DurationUnit.MICROSECONDS) -> None:
        self.unit = unit
        self._statistics = TimerStatistics()

    @property
    def statistics(self) -> TimerStatistics:
        return self._statistics

    @beartype
    def add_measurement(self, time: int) -> None:
        self._statistics.add(time)

    def clear(self) -> None:
        self._statistics.clear()

    def report_lines(self) -> list[str]:
        stats = self._statistics
        label = self.unit.label
        return [
            SEPARATOR,
            f"{'Average Time':<18} : {stats.mean():.3f} {label}",
            f"{'Variance':<18} : {stats.variance():.3f} {label}",
            f"{'Standard Deviation':<18} : {stats.standard_deviation():.3f} {label}",
            f"{'Median Time':<18} : {stats.median():.3f} {label}",
            f"{'Minimum Time':<18} : {stats.minimum()} {label}",
            f"{'Maximum Time':<18} : {stats.maximum()} {label}",
            SEPARATOR,
        ]

    def render(self) -> str:
        return "\n".join(self.report_lines()) + "\n"

    @beartype
    def log_statistics(self, path: Path | str) -> None:
        """Write the plain-text statistics report to path.

        Parent directories are created. The file is overwritten.

        Raises:
            StatisticsFileError: the report could not be written.
        """
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                f.write(self.render())
        except OSError as exc:
            raise StatisticsFileError(
                f"Cannot write statistics report to {str(target)!r}: {exc}"
            ) from exc
        logger.debug(
            f"Wrote statistics for {self._statistics.count} measurements -> {target}"
        )

    @beartype
    def log_summary(self, title: str = "TIMER STATISTICS") -> None:
        """Emit the report via loguru, one INFO record per line."""
        logger.info(f"{title:^40}")
        for line in self.report_lines():
            logger.info(line)

    @beartype
    def flush_to_file(self, path: Path | str) -> None:
        """Write the aggregates as a JSON document (unit label included).

        Raises:
            StatisticsFileError: the file could not be written.
        """
        target = Path(path)
        payload = {"unit": self.unit.label, **self._statistics.summary()}
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
        except OSError as exc:
            raise StatisticsFileError(
                f"Cannot write statistics JSON to {str(target)!r}: {exc}"
            ) from exc
