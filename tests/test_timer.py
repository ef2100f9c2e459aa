"""Tests for the running-task timer."""

import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from worklog.errors import LogIOError, ValidationError
from worklog.services.store import LogStore
from worklog.services.timer import Timer, TimerState

from conftest import T0


@pytest.fixture
def timer(tmp_path: Path) -> Timer:
    return Timer(tmp_path / "home" / "timer.json")


def minutes(n: int) -> datetime:
    return T0 + timedelta(minutes=n)


class TestTimerState:
    """Tests for elapsed and paused arithmetic."""

    def test_running(self) -> None:
        state = TimerState("a", T0, paused_seconds=60)
        assert state.elapsed(minutes(10)) == timedelta(minutes=9)
        assert state.paused(minutes(10)) == timedelta(minutes=1)

    def test_pause_in_progress_counts(self) -> None:
        state = TimerState("a", T0, paused_at=minutes(5))
        assert state.paused(minutes(8)) == timedelta(minutes=3)
        assert state.elapsed(minutes(8)) == timedelta(minutes=5)

    def test_clock_going_backwards(self) -> None:
        state = TimerState("a", T0)
        assert state.elapsed(T0 - timedelta(hours=1)) == timedelta(0)

    def test_json_form(self) -> None:
        state = TimerState("a", T0, paused_seconds=30, paused_at=minutes(1))
        assert TimerState.from_dict(json.loads(json.dumps(state.to_dict()))) == state

    def test_missing_field(self) -> None:
        with pytest.raises(ValueError):
            TimerState.from_dict({"description": "a"})


class TestTimer:
    """Tests for start, pause, resume and stop."""

    def test_start_saves_state(self, timer: Timer) -> None:
        timer.start("  write report ", now=T0)
        assert timer.load() == TimerState("write report", T0)

    def test_start_validates_description(self, timer: Timer) -> None:
        with pytest.raises(ValidationError):
            timer.start("   ", now=T0)
        assert not timer.path.exists()

    def test_start_refused_while_running(self, timer: Timer) -> None:
        timer.start("a", now=T0)
        with pytest.raises(ValidationError, match="already running"):
            timer.start("b", now=minutes(1))
        assert timer.load().description == "a"

    def test_pause_twice(self, timer: Timer) -> None:
        timer.start("a", now=T0)
        timer.pause(now=minutes(1))
        with pytest.raises(ValidationError, match="already paused"):
            timer.pause(now=minutes(2))

    def test_resume_when_running(self, timer: Timer) -> None:
        timer.start("a", now=T0)
        with pytest.raises(ValidationError, match="not paused"):
            timer.resume(now=minutes(1))

    def test_pauses_accumulate(self, timer: Timer) -> None:
        timer.start("a", now=T0)
        timer.pause(now=minutes(10))
        timer.resume(now=minutes(15))
        timer.pause(now=minutes(20))
        state = timer.resume(now=minutes(22))
        assert state.paused_seconds == 7 * 60
        assert not state.is_paused

    def test_operations_need_a_timer(self, timer: Timer, store: LogStore) -> None:
        for call in (timer.pause, timer.resume, lambda: timer.stop(store)):
            with pytest.raises(ValidationError, match="No timer"):
                call()

    def test_stop_logs_entry(self, timer: Timer, store: LogStore) -> None:
        timer.start("review", now=T0)
        timer.pause(now=minutes(30))
        index, _ = timer.stop(store, now=minutes(45))
        assert index == 0
        entry = store[0]
        assert entry.timestamp == T0
        assert entry.duration == timedelta(minutes=30)
        assert entry.paused == timedelta(minutes=15)
        assert timer.load() is None
        assert LogStore.open(store.path).list() == store.list()

    def test_failed_append_keeps_timer(
        self, timer: Timer, store: LogStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        timer.start("review", now=T0)

        def broken(entry) -> None:
            raise LogIOError(store.path, "append to", OSError(28, "No space left on device"))

        monkeypatch.setattr(store, "_append_record", broken)
        with pytest.raises(LogIOError):
            timer.stop(store, now=minutes(5))
        assert timer.load() == TimerState("review", T0)

    def test_unreadable_state_is_no_timer(self, timer: Timer) -> None:
        timer.path.parent.mkdir(parents=True)
        timer.path.write_text("{not json", encoding="utf-8")
        assert timer.load() is None
        timer.start("a", now=T0)
        assert timer.load().description == "a"
