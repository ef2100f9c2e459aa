"""Tests for the command-line entry point."""

import logging
from datetime import timedelta
from pathlib import Path

import pytest

from worklog import config
from worklog.cli import main
from worklog.config import load_config, timer_path
from worklog.parser import HEADER
from worklog.services import timer as timer_module
from worklog.services.store import LogStore

from conftest import T0


@pytest.fixture(autouse=True)
def drop_log_handler():
    yield
    config.reset_logging()
    logging.getLogger("worklog").setLevel(logging.NOTSET)


@pytest.fixture
def run(log_path: Path):
    """Run the CLI against the test log file."""

    def _run(*args: str) -> int:
        return main(["-o", str(log_path), *args])

    return _run


class TestAddAndList:
    """Tests for the add and list commands."""

    def test_add(self, run, log_path: Path, capsys) -> None:
        assert run("add", "write", "report", "-d", "1h", "--at", "2026-10-18T09:00:00Z") == 0
        assert "Added entry 0" in capsys.readouterr().out
        entry = LogStore.open(log_path)[0]
        assert entry.description == "write report"
        assert entry.seconds == 3600

    def test_add_paused(self, run, log_path: Path) -> None:
        assert run("add", "review", "-d", "30m", "--paused", "5m") == 0
        assert LogStore.open(log_path)[0].paused.total_seconds() == 300

    def test_list(self, run, capsys) -> None:
        run("add", "write report", "-d", "1h")
        run("add", "review", "-d", "1:30")
        capsys.readouterr()
        assert run("list") == 0
        out = capsys.readouterr().out.splitlines()
        assert len(out) == 2
        assert "write report" in out[0] and "01:00:00" in out[0]
        assert "review" in out[1] and "01:30:00" in out[1]

    def test_list_empty(self, run, capsys) -> None:
        assert run("list") == 0
        assert "No entries logged yet." in capsys.readouterr().out

    @pytest.mark.parametrize("args", [
        ("add", "x", "-d", "soon"),
        ("add", "   ", "-d", "1h"),
        ("add", "x", "-d", "1h", "--at", "tomorrow-ish"),
    ])
    def test_invalid_input(self, run, log_path: Path, args, capsys) -> None:
        assert run(*args) == 3
        assert "error:" in capsys.readouterr().err
        assert not log_path.exists()

    def test_undecodable_description(self, run, log_path: Path, capsys) -> None:
        assert run("add", "bad \udcff", "-d", "60") == 3
        assert "not valid text" in capsys.readouterr().err
        assert not log_path.exists()

    def test_output_file_is_remembered(self, run, log_path: Path) -> None:
        run("list")
        assert load_config().log_path == log_path


class TestDelete:
    """Tests for the delete command."""

    def test_delete_renumbers(self, run, log_path: Path, capsys) -> None:
        run("add", "write report", "-d", "3600")
        run("add", "review", "-d", "1800")
        assert run("delete", "0") == 0
        assert "renumbered" in capsys.readouterr().out
        store = LogStore.open(log_path)
        assert [(e.index, e.description) for e in store] == [(0, "review")]

    def test_out_of_range(self, run, capsys) -> None:
        run("add", "write report", "-d", "1h")
        assert run("delete", "5") == 4
        assert "valid range is 0..0" in capsys.readouterr().err

    def test_usage_error(self, run) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run("delete", "first")
        assert exc_info.value.code == 2


class TestSummaryAndExport:
    """Tests for summary and export."""

    def test_summary_by_task(self, run, capsys) -> None:
        run("add", "review", "-d", "30m")
        run("add", "write", "-d", "1h")
        run("add", "review", "-d", "15m")
        capsys.readouterr()
        assert run("summary", "--by", "task") == 0
        out = capsys.readouterr().out.splitlines()
        assert out[0] == "Summary (by task)"
        assert "review" in out[1] and "00:45:00" in out[1]
        assert "total" in out[-1] and "01:45:00" in out[-1]

    def test_export(self, run, tmp_path: Path) -> None:
        run("add", "review", "-d", "30m")
        dest = tmp_path / "export.csv"
        assert run("export", str(dest)) == 0
        lines = dest.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "Title,Start Time,Duration (secs)"
        assert lines[1].startswith("review,")
        assert lines[1].endswith(",1800")


class TestCorruptLog:
    """Tests for loading and repairing corrupt files."""

    @pytest.fixture
    def corrupt(self, log_path: Path) -> Path:
        log_path.parent.mkdir(parents=True)
        log_path.write_text(
            ",".join(HEADER) + "\n"
            "0,2026-10-18T09:00:00+00:00,a,60,0\n"
            "1,2026-10-18T10:00:00+00:00,b,lots,0\n",
            encoding="utf-8",
        )
        return log_path

    def test_refuses_to_load(self, run, corrupt: Path, capsys) -> None:
        assert run("list") == 6
        err = capsys.readouterr().err
        assert "corrupt log" in err
        assert "--skip-corrupt" in err

    def test_skip_corrupt(self, log_path: Path, corrupt: Path, capsys) -> None:
        assert main(["-o", str(log_path), "--skip-corrupt", "list"]) == 0
        captured = capsys.readouterr()
        assert "skipped 1 corrupt record" in captured.err
        assert "a" in captured.out

    def test_repair(self, run, corrupt: Path, capsys) -> None:
        assert run("repair") == 0
        assert "dropped 1" in capsys.readouterr().out
        assert [e.description for e in LogStore.open(corrupt)] == ["a"]

    def test_delete_after_skip_corrupt_is_refused(self, log_path: Path, corrupt: Path, capsys) -> None:
        before = corrupt.read_bytes()
        assert main(["-o", str(log_path), "--skip-corrupt", "delete", "0"]) == 6
        assert "worklog repair" in capsys.readouterr().err
        assert corrupt.read_bytes() == before

    def test_torn_final_record_warns(self, run, log_path: Path, capsys) -> None:
        log_path.parent.mkdir(parents=True)
        log_path.write_bytes(
            (",".join(HEADER) + "\r\n0,2026-10-18T09:00:00+00:00,a,60,0\r\n1,2026-10").encode()
        )
        assert run("list") == 0
        captured = capsys.readouterr()
        assert "incomplete final record" in captured.err
        assert "a" in captured.out


class TestTimer:
    """Tests for the start/pause/resume/stop commands."""

    @pytest.fixture
    def clock(self, monkeypatch: pytest.MonkeyPatch):
        """Controllable "now" for the timer."""
        times = [T0]

        def now():
            return times[-1]

        monkeypatch.setattr(timer_module, "_now", now)
        return times

    def test_full_cycle(self, run, log_path: Path, clock, capsys) -> None:
        assert run("start", "write", "report") == 0
        clock.append(T0 + timedelta(minutes=20))
        assert run("pause") == 0
        clock.append(T0 + timedelta(minutes=30))
        assert run("resume") == 0
        clock.append(T0 + timedelta(minutes=50))
        assert run("stop") == 0
        assert "Logged entry 0" in capsys.readouterr().out

        entry = LogStore.open(log_path)[0]
        assert entry.description == "write report"
        assert entry.timestamp == T0
        assert entry.seconds == 40 * 60
        assert entry.paused == timedelta(minutes=10)
        assert not timer_path().exists()

    def test_stop_without_start(self, run, log_path: Path, capsys) -> None:
        assert run("stop") == 3
        assert "No timer is running" in capsys.readouterr().err
        assert not log_path.exists()

    def test_second_start_refused(self, run, clock) -> None:
        assert run("start", "a") == 0
        assert run("start", "b") == 3

    def test_status(self, run, clock, capsys) -> None:
        assert run("status") == 0
        assert "No timer running" in capsys.readouterr().out
        run("start", "review")
        capsys.readouterr()
        assert run("status") == 0
        assert "review: running" in capsys.readouterr().out
