"""Shared fixtures for the worklog tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from worklog.models import Entry
from worklog.services.store import LogStore

T0 = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def worklog_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep config and diagnostics out of the real home directory."""
    home = tmp_path / "home"
    monkeypatch.setenv("WORKLOG_HOME", str(home))
    return home


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "worklog.csv"


@pytest.fixture
def store(log_path: Path) -> LogStore:
    return LogStore(log_path)


def make_entries(*specs: tuple[str, int], start: datetime = T0) -> list[Entry]:
    """Entries one hour apart from ``start``: specs are (description, seconds)."""
    return [
        Entry.create(desc, secs, start + timedelta(hours=i), index=i)
        for i, (desc, secs) in enumerate(specs)
    ]
