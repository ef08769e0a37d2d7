"""Duration units used for scaling and labelling elapsed time."""

from enum import Enum

from beartype import beartype


class DurationUnit(Enum):
    """Display/scale tag for elapsed time.

    Each member carries the number of nanoseconds in one tick and the
    label printed next to values in that unit.
    """

    NANOSECONDS = (1, "nanoseconds")
    MICROSECONDS = (1_000, "microseconds")
    MILLISECONDS = (1_000_000, "milliseconds")
    SECONDS = (1_000_000_000, "seconds")
    MINUTES = (60 * 1_000_000_000, "minutes")
    HOURS = (3600 * 1_000_000_000, "hours")

    def __init__(self, nanoseconds: int, label: str) -> None:
        self.nanoseconds = nanoseconds
        self.label = label

    def ticks(self, ns: int) -> int:
        """Truncate a nanosecond timestamp to whole ticks of this unit."""
        return ns // self.nanoseconds

    @classmethod
    @beartype
    def parse(cls, text: str) -> "DurationUnit":
        """Look up a unit by label or member name (case-insensitive).

        Raises:
            ValueError: text names no known unit.
        """
        key = text.strip().lower()
        for unit in cls:
            if key in (unit.label, unit.name.lower()):
                return unit
        raise ValueError(
            f"Unknown duration unit: {text!r}. "
            f"Expected one of {[u.label for u in cls]}"
        )

    def __str__(self) -> str:
        return self.label
