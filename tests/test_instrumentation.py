"""Tests for the trace-event Instrumentor and InstrumentationTimer."""

import json
import threading
from pathlib import Path

import pytest

from coco_profiling import (
    DurationUnit,
    InstrumentationTimer,
    Instrumentor,
    ProfileResult,
    ProfilingConfig,
    TraceFileError,
)


def read_trace(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# ProfileResult
# ---------------------------------------------------------------------------

class TestProfileResult:
    def test_to_json_field_layout(self):
        result = ProfileResult("load", start=100, end=175, thread_id=7)
        assert result.to_json() == (
            '{"cat":"function","dur":75,"name":"load","ph":"X",'
            '"pid":0,"tid":7,"ts":100}'
        )

    def test_double_quotes_become_single_quotes(self):
        result = ProfileResult('say "hi"', start=0, end=1, thread_id=1)
        assert json.loads(result.to_json())["name"] == "say 'hi'"

    def test_duration(self):
        assert ProfileResult("x", 10, 25, 0).duration == 15


# ---------------------------------------------------------------------------
# Instrumentor
# ---------------------------------------------------------------------------

class TestInstrumentor:
    def test_three_event_round_trip(self, tmp_path: Path):
        out = tmp_path / "out.json"
        instrumentor = Instrumentor()
        instrumentor.begin_session("s", out)
        for i in range(3):
            instrumentor.write_profile(ProfileResult(f"e{i}", i * 10, i * 10 + 5, 1))
        instrumentor.end_session()

        text = out.read_text()
        assert text.startswith('{"otherData": {},"traceEvents":[{')
        assert ",," not in text
        assert text.endswith("}]}")

        events = read_trace(out)["traceEvents"]
        assert len(events) == 3
        assert [e["name"] for e in events] == ["e0", "e1", "e2"]
        assert all(e["dur"] == 5 and e["ph"] == "X" and e["pid"] == 0 for e in events)

    def test_empty_session_is_valid_json(self, tmp_path: Path):
        out = tmp_path / "empty.json"
        instrumentor = Instrumentor()
        instrumentor.begin_session("s", out)
        instrumentor.end_session()
        assert read_trace(out) == {"otherData": {}, "traceEvents": []}

    def test_session_state_and_count(self, tmp_path: Path):
        out = tmp_path / "state.json"
        instrumentor = Instrumentor()
        assert not instrumentor.is_active

        instrumentor.begin_session("run", out)
        instrumentor.write_profile(ProfileResult("a", 0, 1, 1))
        assert instrumentor.is_active
        assert instrumentor.session_name == "run"
        assert instrumentor.path == out
        assert instrumentor.profile_count == 1

        instrumentor.end_session()
        assert not instrumentor.is_active
        assert instrumentor.session_name is None
        assert instrumentor.profile_count == 0

    def test_events_without_session_are_dropped(self, tmp_path: Path, captured_logs):
        instrumentor = Instrumentor()
        instrumentor.write_profile(ProfileResult("early", 0, 1, 1))
        assert instrumentor.profile_count == 0
        assert any("dropping event 'early'" in m for m in captured_logs)

        out = tmp_path / "late.json"
        with instrumentor.session("s", out):
            instrumentor.write_profile(ProfileResult("late", 0, 1, 1))

        assert [e["name"] for e in read_trace(out)["traceEvents"]] == ["late"]

    def test_end_session_without_session_is_no_op(self):
        instrumentor = Instrumentor()
        instrumentor.end_session()
        assert not instrumentor.is_active

    def test_sequential_sessions_restart_comma_placement(self, tmp_path: Path):
        instrumentor = Instrumentor()
        for n in range(2):
            out = tmp_path / f"run{n}.json"
            with instrumentor.session(f"run{n}", out):
                instrumentor.write_profile(ProfileResult("a", 0, 1, 1))
                instrumentor.write_profile(ProfileResult("b", 1, 2, 1))
            assert len(read_trace(out)["traceEvents"]) == 2

    def test_reentrant_begin_ends_previous_session(self, tmp_path: Path, captured_logs):
        first = tmp_path / "first.json"
        second = tmp_path / "second.json"
        instrumentor = Instrumentor()

        instrumentor.begin_session("first", first)
        instrumentor.write_profile(ProfileResult("a", 0, 1, 1))
        instrumentor.begin_session("second", second)
        instrumentor.write_profile(ProfileResult("b", 0, 1, 1))
        instrumentor.end_session()

        assert [e["name"] for e in read_trace(first)["traceEvents"]] == ["a"]
        assert [e["name"] for e in read_trace(second)["traceEvents"]] == ["b"]
        assert any(m.startswith("WARNING|") and "'first'" in m for m in captured_logs)

    def test_unopenable_path_raises(self, tmp_path: Path):
        instrumentor = Instrumentor()
        with pytest.raises(TraceFileError) as excinfo:
            instrumentor.begin_session("s", tmp_path)
        assert isinstance(excinfo.value.__cause__, OSError)
        assert not instrumentor.is_active

    def test_creates_parent_directories(self, tmp_path: Path):
        out = tmp_path / "a" / "b" / "trace.json"
        with Instrumentor().session("s", out):
            pass
        assert out.exists()

    def test_default_path_used_when_none_given(self, tmp_path: Path):
        out = tmp_path / "default.json"
        instrumentor = Instrumentor(default_path=out)
        instrumentor.begin_session("s")
        instrumentor.end_session()
        assert read_trace(out)["traceEvents"] == []

    def test_exiting_instrumentor_context_ends_session(self, tmp_path: Path):
        out = tmp_path / "ctx.json"
        with Instrumentor() as instrumentor:
            instrumentor.begin_session("s", out)
            instrumentor.write_profile(ProfileResult("a", 0, 1, 1))
        assert not instrumentor.is_active
        assert len(read_trace(out)["traceEvents"]) == 1

    def test_profile_scope_records_event(self, tmp_path: Path):
        out = tmp_path / "scope.json"
        instrumentor = Instrumentor()
        with instrumentor.session("s", out):
            with instrumentor.profile_scope('step "one"') as timer:
                pass
        assert timer.is_stopped

        (event,) = read_trace(out)["traceEvents"]
        assert event["name"] == "step 'one'"
        assert event["tid"] == threading.get_ident()
        assert event["dur"] >= 0

    def test_profile_function_names_event_after_function(self, tmp_path: Path):
        out = tmp_path / "func.json"
        instrumentor = Instrumentor()

        @instrumentor.profile_function
        def compute(x):
            return x * 2

        with instrumentor.session("s", out):
            assert compute(21) == 42
            assert compute(1) == 2

        events = read_trace(out)["traceEvents"]
        assert len(events) == 2
        assert events[0]["name"].endswith(
            "test_profile_function_names_event_after_function.<locals>.compute"
        )
        assert compute.__name__ == "compute"

    def test_disabled_instrumentor_records_nothing(self, tmp_path: Path):
        out = tmp_path / "off.json"
        instrumentor = Instrumentor(enabled=False)

        @instrumentor.profile_function
        def work():
            return "done"

        with instrumentor.session("s", out):
            with instrumentor.profile_scope("skipped") as timer:
                assert timer is None
            assert work() == "done"

        assert read_trace(out)["traceEvents"] == []

    def test_from_config(self, tmp_path: Path):
        config = ProfilingConfig(
            unit=DurationUnit.NANOSECONDS,
            profiling_enabled=False,
            trace_path=tmp_path / "cfg.json",
        )
        instrumentor = Instrumentor.from_config(config)
        assert instrumentor.enabled is False
        assert instrumentor.unit is DurationUnit.NANOSECONDS
        assert instrumentor.default_path == tmp_path / "cfg.json"

    def test_concurrent_timers_produce_valid_document(self, tmp_path: Path):
        out = tmp_path / "threads.json"
        instrumentor = Instrumentor()

        def work(n: int) -> None:
            for i in range(n):
                with instrumentor.profile_scope(f"work-{i}"):
                    pass

        with instrumentor.session("threads", out):
            threads = [threading.Thread(target=work, args=(50,)) for _ in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        events = read_trace(out)["traceEvents"]
        assert len(events) == 200
        assert len({e["tid"] for e in events}) >= 1


# ---------------------------------------------------------------------------
# InstrumentationTimer
# ---------------------------------------------------------------------------

class TestInstrumentationTimer:
    def test_stop_emits_exactly_one_event(self, tmp_path: Path, clock):
        out = tmp_path / "timer.json"
        instrumentor = Instrumentor()
        with instrumentor.session("s", out):
            timer = InstrumentationTimer(instrumentor, "once", clock=clock)
            clock.advance_us(30)
            timer.stop()
            clock.advance_us(30)
            timer.stop()

        (event,) = read_trace(out)["traceEvents"]
        assert event["dur"] == 30
        assert event["ts"] == DurationUnit.MICROSECONDS.ticks(clock.now - 60_000)
        assert timer.time == 30

    def test_default_name(self):
        timer = InstrumentationTimer(Instrumentor())
        assert timer.name == "Coco Instrumentation Timer"
        timer.stop()

    def test_reset_allows_second_event(self, tmp_path: Path, clock):
        out = tmp_path / "reset.json"
        instrumentor = Instrumentor()
        with instrumentor.session("s", out):
            timer = InstrumentationTimer(instrumentor, "twice", clock=clock)
            clock.advance_us(1)
            timer.stop()
            timer.reset()
            assert not timer.is_stopped
            clock.advance_us(2)
            timer.stop()

        assert [e["dur"] for e in read_trace(out)["traceEvents"]] == [1, 2]

    def test_unit_scales_timestamps(self, tmp_path: Path, clock):
        out = tmp_path / "ms.json"
        instrumentor = Instrumentor()
        clock.now = 5_000_000
        with instrumentor.session("s", out):
            with InstrumentationTimer(
                instrumentor, "ms", unit=DurationUnit.MILLISECONDS, clock=clock
            ):
                clock.advance(3_000_000)

        (event,) = read_trace(out)["traceEvents"]
        assert event["ts"] == 5
        assert event["dur"] == 3

    def test_stop_without_session_still_measures(self, clock):
        instrumentor = Instrumentor()
        with InstrumentationTimer(instrumentor, "orphan", clock=clock) as timer:
            clock.advance_us(7)
        assert timer.time == 7
        assert instrumentor.profile_count == 0
