"""CSV export for spreadsheets and invoicing tools."""

from __future__ import annotations

import csv
import logging
from datetime import timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Iterable

from worklog.errors import LogIOError
from worklog.models import Entry

logger = logging.getLogger(__name__)

EXPORT_HEADER = ["Title", "Start Time", "Duration (secs)"]


def export_rows(entries: Iterable[Entry]) -> list[list[str]]:
    """Build export rows: description, RFC 2822 start time, whole seconds."""
    rows = []
    for entry in entries:
        ts = entry.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        rows.append([entry.description, format_datetime(ts), str(entry.seconds)])
    return rows


def export_csv(entries: Iterable[Entry], dest: Path | str) -> int:
    """Write entries to ``dest`` (overwriting it). Returns the row count."""
    dest = Path(dest).expanduser()
    rows = export_rows(entries)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(dest, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(EXPORT_HEADER)
            writer.writerows(rows)
    except OSError as exc:
        logger.error("Export to %s failed: %s", dest, exc)
        raise LogIOError(dest, "export to", exc) from exc
    logger.info("Exported %d entries to %s", len(rows), dest)
    return len(rows)
