"""CSV record codec for the backing log file.

One record per entry, header first::

    Index,Start Time,Task Description,Elapsed Time (seconds),Paused Time (seconds)
    0,2026-10-18T09:00:00+00:00,write report,3600,0

Handles:
- Legacy four-column files with no paused column (paused defaults to 0)
- The ``Paused Duration (seconds)`` header spelling
- RFC 2822 start times written by older versions
- Multi-line descriptions (quoted CSV fields spanning lines)

Parsing never guesses: a record that cannot be read raises
``CorruptLogError`` with the line number and the raw fields.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import IO, Iterable, Iterator

from worklog.errors import CorruptLogError, ValidationError
from worklog.models import Entry

HEADER = [
    "Index",
    "Start Time",
    "Task Description",
    "Elapsed Time (seconds)",
    "Paused Time (seconds)",
]

# Columns that must be present, compared case-insensitively
_REQUIRED = [h.lower() for h in HEADER[:4]]
_PAUSED_ALIASES = {"paused time (seconds)", "paused duration (seconds)"}


def is_header(row: list[str]) -> bool:
    """Check whether a row is a (current or legacy) header."""
    cells = [c.strip().lower() for c in row]
    if cells[:4] != _REQUIRED:
        return False
    return len(cells) == 4 or (len(cells) == 5 and cells[4] in _PAUSED_ALIASES)


def format_timestamp(ts: datetime) -> str:
    return ts.isoformat()


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO 8601 timestamp, falling back to RFC 2822."""
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text.strip())
    except (TypeError, ValueError, IndexError):
        raise ValueError(f"unrecognized start time {text!r}") from None


def _parse_seconds(text: str, label: str) -> int:
    value = text.strip()
    try:
        seconds = int(value)
    except ValueError:
        raise ValueError(f"{label} is not a whole number: {text!r}") from None
    if seconds < 0:
        raise ValueError(f"{label} is negative: {seconds}")
    return seconds


def format_record(entry: Entry) -> list[str]:
    """Serialize an entry to CSV fields, in header order."""
    return [
        str(entry.index),
        format_timestamp(entry.timestamp),
        entry.description,
        str(int(entry.duration.total_seconds())),
        str(int(entry.paused.total_seconds())),
    ]


def parse_record(row: list[str], *, line: int, path: Path | None = None) -> Entry:
    """Build an entry from CSV fields.

    The returned entry carries the index stored in the file; the store
    decides the real index from the record's position.
    """
    if len(row) not in (4, 5):
        raise CorruptLogError(path, line, row, f"expected 4 or 5 fields, found {len(row)}")

    try:
        index = _parse_seconds(row[0], "index")
        timestamp = parse_timestamp(row[1])
        duration = _parse_seconds(row[3], "elapsed time")
        paused = _parse_seconds(row[4], "paused time") if len(row) == 5 and row[4].strip() else 0
        return Entry.create(row[2], duration, timestamp, index=index, paused=paused)
    except (ValueError, ValidationError) as exc:
        raise CorruptLogError(path, line, row, str(exc)) from exc


def read_rows(handle: IO[str], path: Path | None = None) -> Iterator[tuple[int, list[str]]]:
    """Yield ``(first_line_number, fields)`` for every non-blank CSV row."""
    reader = csv.reader(handle)
    next_line = 1
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error as exc:
            raise CorruptLogError(path, next_line, [], f"malformed CSV: {exc}") from exc
        start = next_line
        next_line = reader.line_num + 1
        if not row or all(not cell.strip() for cell in row):
            continue
        yield start, row


def dump_records(entries: Iterable[Entry], *, header: bool = True) -> str:
    """Serialize entries (optionally preceded by the header) to CSV text."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    if header:
        writer.writerow(HEADER)
    for entry in entries:
        writer.writerow(format_record(entry))
    return buf.getvalue()
