"""Shared fixtures: a hand-driven clock and a loguru message capture."""

from collections.abc import Generator

import pytest
from loguru import logger


class FakeClock:
    """Monotonic nanosecond clock that only moves when told to."""

    def __init__(self, start_ns: int = 1_000_000_000) -> None:
        self.now = start_ns

    def __call__(self) -> int:
        return self.now

    def advance(self, ns: int) -> None:
        self.now += ns

    def advance_us(self, us: int) -> None:
        self.now += us * 1_000


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def captured_logs() -> Generator[list[str], None, None]:
    """Collect formatted loguru messages ("LEVEL|message") emitted during a test."""
    messages: list[str] = []
    sink_id = logger.add(
        lambda msg: messages.append(str(msg).rstrip("\n")),
        format="{level}|{message}",
        level="DEBUG",
    )
    yield messages
    logger.remove(sink_id)
