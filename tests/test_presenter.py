"""Tests for the width-aware presenter."""

from datetime import timezone
from zoneinfo import ZoneInfo

import pytest
from rich.cells import cell_len

from worklog.models import Entry
from worklog.presenter import (
    EMPTY_LISTING,
    EMPTY_SUMMARY,
    MARKER,
    DisplaySettings,
    Mode,
    confirm_prompt,
    render,
    shorten,
)
from worklog.services.summary import Grouping

from conftest import T0, make_entries

UTC_SETTINGS = DisplaySettings(tz=timezone.utc)


@pytest.fixture
def entries() -> list[Entry]:
    return make_entries(
        ("write report", 3600),
        ("review the pull request from the platform team", 1800),
        ("日本語のタスク", 90),
    )


class TestWidth:
    """Every line fits the requested width."""

    @pytest.mark.parametrize("mode", list(Mode))
    def test_all_widths(self, entries: list[Entry], mode: Mode) -> None:
        for width in range(0, 121):
            lines = render(entries, width, 1, mode, pending_index=1, settings=UTC_SETTINGS)
            for line in lines:
                assert cell_len(line) <= width, (width, line)

    def test_empty_store_all_widths(self) -> None:
        for width in range(0, 60):
            for mode in Mode:
                for line in render([], width, None, mode):
                    assert cell_len(line) <= width

    def test_multiline_description_stays_on_one_line(self) -> None:
        entry = Entry.create("first\nsecond", 60, T0)
        lines = render([entry], 80, 0, settings=UTC_SETTINGS)
        assert len(lines) == 1
        assert "first second" in lines[0]


class TestMarker:
    """At most one line carries the selection marker."""

    @pytest.mark.parametrize("selected", [None, 0, 1, 2, 7])
    def test_marker_matches_selection(self, entries: list[Entry], selected) -> None:
        lines = render(entries, 100, selected, settings=UTC_SETTINGS)
        marked = [i for i, line in enumerate(lines) if line.startswith(MARKER)]
        if selected is not None and 0 <= selected < len(entries):
            assert marked == [selected]
        else:
            assert marked == []

    def test_summary_marks_nothing(self, entries: list[Entry]) -> None:
        lines = render(entries, 100, 1, Mode.SUMMARY, settings=UTC_SETTINGS)
        assert not any(line.startswith(MARKER) for line in lines)


class TestListing:
    """Tests for the listing layout."""

    def test_full_row(self, entries: list[Entry]) -> None:
        line = render(entries, 120, 0, settings=UTC_SETTINGS)[0]
        assert line.startswith(MARKER + "0  write report")
        assert line.endswith("01:00:00  2026-10-18 09:00")

    def test_columns_align(self, entries: list[Entry]) -> None:
        lines = render(entries, 120, None, settings=UTC_SETTINGS)
        columns = {cell_len(line) for line in lines}
        assert len(columns) == 1

    def test_description_truncated_first(self, entries: list[Entry]) -> None:
        line = render(entries, 60, 1, settings=UTC_SETTINGS)[1]
        assert "…" in line
        assert "00:30:00" in line
        assert "2026-10-18 10:00" in line

    def test_timestamp_dropped_before_description(self, entries: list[Entry]) -> None:
        line = render(entries, 28, 0, settings=UTC_SETTINGS)[0]
        assert "2026" not in line
        assert "01:00:00" in line
        assert "0  w" in line

    def test_index_dropped_last(self, entries: list[Entry]) -> None:
        # Room for marker, index and duration but no description
        line = render(entries, len(MARKER) + 3 + 8, 0, settings=UTC_SETTINGS)[0]
        assert line == MARKER + "0  01:00:00"

    def test_only_duration(self, entries: list[Entry]) -> None:
        line = render(entries, len(MARKER) + 8, 0, settings=UTC_SETTINGS)[0]
        assert line == MARKER + "01:00:00"

    def test_empty_store(self) -> None:
        assert render([], 80) == ["  " + EMPTY_LISTING]

    def test_timezone_applied(self) -> None:
        settings = DisplaySettings(tz=ZoneInfo("Asia/Tokyo"))
        line = render(make_entries(("a", 60)), 80, settings=settings)[0]
        assert line.endswith("2026-10-18 18:00")


class TestConfirm:
    """Tests for the delete confirmation line."""

    def test_prompt_appended(self, entries: list[Entry]) -> None:
        lines = render(entries, 100, 0, Mode.CONFIRM_DELETE, pending_index=0, settings=UTC_SETTINGS)
        assert len(lines) == len(entries) + 1
        assert lines[-1] == "Delete entry 0: write report? [y/n]"

    def test_prompt_shortens_description(self) -> None:
        entry = Entry.create("x" * 200, 60, T0)
        prompt = confirm_prompt(entry, 40)
        assert cell_len(prompt) <= 40
        assert prompt.endswith("…? [y/n]")

    def test_stale_pending_index_ignored(self, entries: list[Entry]) -> None:
        lines = render(entries, 100, 0, Mode.CONFIRM_DELETE, pending_index=9)
        assert len(lines) == len(entries)


class TestSummary:
    """Tests for summary rendering."""

    def test_task_grouping(self, entries: list[Entry]) -> None:
        settings = DisplaySettings(tz=timezone.utc, grouping=Grouping.TASK)
        lines = render(entries, 100, None, Mode.SUMMARY, settings=settings)
        assert lines[0] == "Summary (by task)"
        assert lines[1].startswith("  write report")
        assert lines[1].endswith("01:00:00")
        assert lines[-1].startswith("  total")
        assert lines[-1].endswith("01:31:30")

    def test_total_grouping_has_single_row(self, entries: list[Entry]) -> None:
        settings = DisplaySettings(grouping=Grouping.TOTAL)
        lines = render(entries, 80, None, Mode.SUMMARY, settings=settings)
        assert len(lines) == 2
        assert lines[1].endswith("01:31:30")

    def test_empty(self) -> None:
        assert render([], 80, None, Mode.SUMMARY)[1] == "  " + EMPTY_SUMMARY


class TestShorten:
    """Tests for the cell-aware shorten helper."""

    def test_fits(self) -> None:
        assert shorten("abc", 3) == "abc"

    def test_cut(self) -> None:
        assert shorten("abcdef", 4) == "abc…"

    def test_wide_characters(self) -> None:
        result = shorten("日本語のタスク", 6)
        assert cell_len(result) <= 6
        assert result.endswith("…")
