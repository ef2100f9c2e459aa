"""Duration totals grouped by day, ISO week, task or overall."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Hashable, Iterable

from worklog.models import Entry

TOTAL_KEY = "total"


class Grouping(str, Enum):
    DAY = "day"
    WEEK = "week"
    TASK = "task"
    TOTAL = "total"

    @property
    def label(self) -> str:
        return {
            Grouping.DAY: "by day",
            Grouping.WEEK: "by week",
            Grouping.TASK: "by task",
            Grouping.TOTAL: "total",
        }[self]

    def next(self) -> Grouping:
        """Cycle to the following grouping, wrapping around."""
        members = list(Grouping)
        return members[(members.index(self) + 1) % len(members)]


def local_date(ts: datetime, tz: tzinfo | None = None) -> date:
    """Calendar date of a timestamp in ``tz`` (local time when None)."""
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(tz).date()


def week_start(day: date) -> date:
    """Monday of the ISO week containing ``day``."""
    return day - timedelta(days=day.weekday())


def total_duration(entries: Iterable[Entry]) -> timedelta:
    return sum((e.duration for e in entries), timedelta(0))


def summarize(
    entries: Iterable[Entry],
    grouping: Grouping | str = Grouping.DAY,
    tz: tzinfo | None = None,
) -> dict[Hashable, timedelta]:
    """Sum entry durations per group.

    Day and week keys are ``date`` objects (week keys are the Monday) in
    ascending order. Task keys are exact descriptions in first-seen order.
    The total grouping has the single key ``"total"``. No entries, no keys.
    """
    grouping = Grouping(grouping)
    totals: dict[Hashable, timedelta] = defaultdict(timedelta)

    for entry in entries:
        if grouping is Grouping.DAY:
            key: Hashable = local_date(entry.timestamp, tz)
        elif grouping is Grouping.WEEK:
            key = week_start(local_date(entry.timestamp, tz))
        elif grouping is Grouping.TASK:
            key = entry.description
        else:
            key = TOTAL_KEY
        totals[key] += entry.duration

    if grouping in (Grouping.DAY, Grouping.WEEK):
        return dict(sorted(totals.items()))
    return dict(totals)


def format_key(key: Hashable, grouping: Grouping | str) -> str:
    """Human label for a summary key."""
    grouping = Grouping(grouping)
    if grouping is Grouping.WEEK and isinstance(key, date):
        year, week, _ = key.isocalendar()
        return f"{year}-W{week:02d} (from {key.isoformat()})"
    if isinstance(key, date):
        return key.isoformat()
    return str(key)
