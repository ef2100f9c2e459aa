"""Terminal presenter — lays entries out as text lines of a given width.

``render`` is a pure function of (entries, width, selection, mode): it
recomputes every line on each call and keeps no state between calls.

Widths are terminal cells (``rich.cells``), so wide characters count as
two. When a row does not fit, space is taken back in a fixed order:

1. the description shrinks, down to a single ``…``
2. the timestamp is dropped (the description gets its room back)
3. the description is dropped
4. the index is dropped
5. what is left is clipped

The duration is never dropped while it still fits.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Sequence

from rich.cells import cell_len, set_cell_size

from worklog.models import Entry, format_duration
from worklog.services.summary import Grouping, format_key, summarize, total_duration

MARKER = "▶ "
NO_MARKER = "  "
SEP = "  "
ELLIPSIS = "…"

EMPTY_LISTING = "No entries logged yet."
EMPTY_SUMMARY = "Nothing to summarize yet."

_CONTROL_RE = re.compile(r"[\t\r\n\v\f]+")


class Mode(Enum):
    LISTING = "listing"
    CONFIRM_DELETE = "confirm_delete"
    SUMMARY = "summary"


@dataclass(frozen=True)
class DisplaySettings:
    """Display defaults supplied by configuration."""

    date_format: str = "%Y-%m-%d %H:%M"
    tz: tzinfo | None = None
    grouping: Grouping = Grouping.DAY


DEFAULT_SETTINGS = DisplaySettings()


# -- Cell helpers --


def single_line(text: str) -> str:
    return _CONTROL_RE.sub(" ", text)


def shorten(text: str, cells: int) -> str:
    """Truncate to at most ``cells`` cells, ending in an ellipsis if cut."""
    if cells <= 0:
        return ""
    if cell_len(text) <= cells:
        return text
    return set_cell_size(text, cells - 1).rstrip() + ELLIPSIS


def fit(text: str, cells: int) -> str:
    """Pad or truncate to exactly ``cells`` cells."""
    if cells <= 0:
        return ""
    return set_cell_size(shorten(text, cells), cells)


def clip(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if cell_len(text) <= width:
        return text
    return set_cell_size(text, width)


def format_timestamp(ts: datetime, settings: DisplaySettings = DEFAULT_SETTINGS) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone(settings.tz)
    return ts.strftime(settings.date_format)


def _fit_row(
    marker: str,
    text: str,
    duration: str,
    width: int,
    *,
    index: str | None = None,
    timestamp: str | None = None,
    cap: int | None = None,
) -> str:
    head = marker + (index + SEP if index is not None else "")
    tails = [SEP + duration]
    if timestamp is not None:
        tails.insert(0, SEP + duration + SEP + timestamp)

    for tail in tails:
        room = width - cell_len(head) - cell_len(tail)
        if room >= 1:
            cells = room if cap is None else min(room, cap)
            return head + fit(text, cells) + tail

    fallbacks = [marker + duration]
    if index is not None:
        fallbacks.insert(0, head + duration)
    for line in fallbacks:
        if cell_len(line) <= width:
            return line
    return clip(marker + duration, width)


# -- Views --


def render_listing(
    entries: Sequence[Entry],
    width: int,
    selected_index: int | None = None,
    settings: DisplaySettings = DEFAULT_SETTINGS,
) -> list[str]:
    """One line per entry: marker, index, description, duration, timestamp."""
    if not entries:
        return [clip(NO_MARKER + EMPTY_LISTING, width)]

    descriptions = [single_line(e.description) for e in entries]
    durations = [format_duration(e.duration) for e in entries]
    index_w = len(str(len(entries) - 1))
    dur_w = max(len(d) for d in durations)
    desc_cap = max(cell_len(d) for d in descriptions)

    lines = []
    for entry, desc, dur in zip(entries, descriptions, durations):
        marker = MARKER if entry.index == selected_index else NO_MARKER
        lines.append(_fit_row(
            marker,
            desc,
            dur.rjust(dur_w),
            width,
            index=str(entry.index).rjust(index_w),
            timestamp=format_timestamp(entry.timestamp, settings),
            cap=desc_cap,
        ))
    return lines


def confirm_prompt(entry: Entry, width: int) -> str:
    """Question shown under the listing while a delete awaits confirmation."""
    prefix = f"Delete entry {entry.index}: "
    suffix = "? [y/n]"
    room = width - cell_len(prefix) - cell_len(suffix)
    if room >= 1:
        return prefix + shorten(single_line(entry.description), room) + suffix
    return clip(f"Delete {entry.index}{suffix}", width)


def render_summary(
    entries: Sequence[Entry],
    width: int,
    settings: DisplaySettings = DEFAULT_SETTINGS,
) -> list[str]:
    """Title line, one line per group, then the overall total."""
    grouping = settings.grouping
    title = clip(f"Summary ({grouping.label})", width)
    totals = summarize(entries, grouping, settings.tz)
    if not totals:
        return [title, clip(NO_MARKER + EMPTY_SUMMARY, width)]

    rows = [(single_line(format_key(k, grouping)), format_duration(v)) for k, v in totals.items()]
    if grouping is not Grouping.TOTAL:
        rows.append(("total", format_duration(total_duration(entries))))

    label_cap = max(cell_len(label) for label, _ in rows)
    dur_w = max(len(dur) for _, dur in rows)
    lines = [title]
    for label, dur in rows:
        lines.append(_fit_row(NO_MARKER, label, dur.rjust(dur_w), width, cap=label_cap))
    return lines


def render(
    entries: Sequence[Entry],
    width: int,
    selected_index: int | None = None,
    mode: Mode = Mode.LISTING,
    *,
    pending_index: int | None = None,
    settings: DisplaySettings = DEFAULT_SETTINGS,
) -> list[str]:
    """Render the current view as lines no wider than ``width`` cells.

    At most one line carries the selection marker: the entry whose index
    is ``selected_index``. Summary mode shows grouped totals instead of
    the entries and marks nothing.
    """
    width = max(int(width), 0)
    mode = Mode(mode)

    if mode is Mode.SUMMARY:
        return render_summary(entries, width, settings)

    lines = render_listing(entries, width, selected_index, settings)
    if mode is Mode.CONFIRM_DELETE and pending_index is not None and 0 <= pending_index < len(entries):
        lines.append(confirm_prompt(entries[pending_index], width))
    return lines
