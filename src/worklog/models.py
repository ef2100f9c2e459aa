"""Data model for log entries, plus duration formatting and parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Union

from worklog.errors import ValidationError

DurationLike = Union[timedelta, int, float]

_UNIT_RE = re.compile(
    r"^(?:(?P<h>\d+)\s*h)?\s*(?:(?P<m>\d+)\s*m)?\s*(?:(?P<s>\d+)\s*s)?$",
    re.IGNORECASE,
)


def _to_seconds(value: DurationLike, field_name: str) -> timedelta:
    """Normalize a duration to whole seconds, rejecting negatives."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a duration, not {value!r}")
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)):
        seconds = float(value)
    else:
        raise ValidationError(f"{field_name} must be a duration, not {value!r}")

    if seconds != seconds:  # NaN
        raise ValidationError(f"{field_name} is not a number")
    if seconds < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return timedelta(seconds=int(seconds))


@dataclass(frozen=True)
class Entry:
    """One logged task: when it started, what it was, how long it took.

    Instances are immutable. The store re-creates them with a new ``index``
    when deletions shift later entries down.
    """

    index: int
    timestamp: datetime
    description: str
    duration: timedelta
    paused: timedelta = timedelta(0)

    @classmethod
    def create(
        cls,
        description: str,
        duration: DurationLike,
        timestamp: datetime | None = None,
        *,
        index: int = 0,
        paused: DurationLike = 0,
    ) -> Entry:
        """Validate input and build an entry.

        Raises ``ValidationError`` when the description is empty (or only
        whitespace) or cannot be written as UTF-8, or when
        ``duration``/``paused`` is negative. Durations
        are truncated to whole seconds. A missing timestamp means "now",
        in UTC, without microseconds.
        """
        if not isinstance(description, str):
            raise ValidationError("Description must be text")
        description = description.strip()
        if not description:
            raise ValidationError("Description cannot be empty")
        try:
            description.encode("utf-8")
        except UnicodeEncodeError as exc:
            # Undecodable argv bytes arrive as lone surrogates
            raise ValidationError(
                f"Description is not valid text at position {exc.start}: {description!r}"
            ) from exc

        if timestamp is None:
            timestamp = datetime.now(timezone.utc).replace(microsecond=0)
        elif not isinstance(timestamp, datetime):
            raise ValidationError(f"Timestamp must be a datetime, not {timestamp!r}")

        if index < 0:
            raise ValidationError("Index cannot be negative")

        return cls(
            index=index,
            timestamp=timestamp,
            description=description,
            duration=_to_seconds(duration, "Duration"),
            paused=_to_seconds(paused, "Paused time"),
        )

    def with_index(self, index: int) -> Entry:
        """Return a copy of this entry at another position."""
        return replace(self, index=index)

    @property
    def seconds(self) -> int:
        return int(self.duration.total_seconds())


def format_duration(value: DurationLike) -> str:
    """Format a duration as ``HH:MM:SS``. Hours grow past two digits."""
    seconds = int(value.total_seconds()) if isinstance(value, timedelta) else int(value)
    neg = seconds < 0
    seconds = abs(seconds)
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    sign = "-" if neg else ""
    return f"{sign}{h:02d}:{m:02d}:{s:02d}"


def parse_duration(text: str) -> timedelta:
    """Parse user input into a duration.

    Accepts plain seconds (``5400``), clock forms (``1:30`` is H:MM,
    ``1:30:00`` is H:MM:SS) and unit forms (``1h30m``, ``90m``, ``45s``).
    Raises ``ValidationError`` on anything else.
    """
    value = (text or "").strip()
    if not value:
        raise ValidationError("Duration cannot be empty")
    if value.startswith("-"):
        raise ValidationError("Duration cannot be negative")

    if value.isdigit():
        return timedelta(seconds=int(value))

    if ":" in value:
        parts = value.split(":")
        if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
            raise ValidationError(f"Invalid duration: {text!r}")
        nums = [int(p) for p in parts]
        if any(n >= 60 for n in nums[1:]):
            raise ValidationError(f"Minutes and seconds must be below 60: {text!r}")
        h, m = nums[0], nums[1]
        s = nums[2] if len(nums) == 3 else 0
        return timedelta(hours=h, minutes=m, seconds=s)

    match = _UNIT_RE.match(value)
    if not match or not any(match.groupdict().values()):
        raise ValidationError(f"Invalid duration: {text!r}")
    parts = {k: int(v) if v else 0 for k, v in match.groupdict().items()}
    return timedelta(hours=parts["h"], minutes=parts["m"], seconds=parts["s"])
