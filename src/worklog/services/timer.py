"""Running-task timer: start, pause, resume and stop.

Only one timer runs at a time. Its state lives in a small JSON file
between CLI invocations::

    {"description": "write report", "started_at": "2026-10-18T09:00:00+00:00",
     "paused_seconds": 300, "paused_at": null}

Stopping the timer appends one entry to the log: the start time, the
active (unpaused) time as elapsed time, and the paused time. The state
file is only removed once that append succeeded.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from worklog.errors import LogIOError, ValidationError
from worklog.models import Entry
from worklog.services.store import LogStore

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@dataclass
class TimerState:
    """A timer that has been started and not yet stopped."""

    description: str
    started_at: datetime
    paused_seconds: int = 0
    paused_at: datetime | None = None

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    def paused(self, now: datetime) -> timedelta:
        """Total paused time, counting a pause still in progress."""
        total = timedelta(seconds=self.paused_seconds)
        if self.paused_at is not None:
            total += max(now - self.paused_at, timedelta(0))
        return total

    def elapsed(self, now: datetime) -> timedelta:
        """Active time: wall time since start minus paused time."""
        return max(now - self.started_at - self.paused(now), timedelta(0))

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "started_at": self.started_at.isoformat(),
            "paused_seconds": self.paused_seconds,
            "paused_at": self.paused_at.isoformat() if self.paused_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TimerState:
        """Build a state from its JSON form. Raises ValueError on bad data."""
        try:
            paused_at = data.get("paused_at")
            return cls(
                description=str(data["description"]),
                started_at=datetime.fromisoformat(data["started_at"]),
                paused_seconds=int(data.get("paused_seconds", 0)),
                paused_at=datetime.fromisoformat(paused_at) if paused_at else None,
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"bad timer state: {exc}") from exc


class Timer:
    """The timer persisted at ``path``."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> TimerState | None:
        """Return the running timer, or None when there is none.

        An unreadable state file is logged and treated as no timer.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise LogIOError(self.path, "read", exc) from exc
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            return TimerState.from_dict(data)
        except ValueError as exc:
            logger.warning("Ignoring unreadable timer state %s: %s", self.path, exc)
            return None

    def save(self, state: TimerState) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")
        except OSError as exc:
            raise LogIOError(self.path, "write", exc) from exc

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise LogIOError(self.path, "remove", exc) from exc

    def _running(self) -> TimerState:
        state = self.load()
        if state is None:
            raise ValidationError("No timer is running; start one with 'worklog start'")
        return state

    # -- Operations --

    def start(self, description: str, now: datetime | None = None) -> TimerState:
        """Start timing ``description``. Refuses while another timer runs."""
        current = self.load()
        if current is not None:
            raise ValidationError(f"A timer is already running for {current.description!r}")
        now = now or _now()
        # Same rules as a logged entry
        entry = Entry.create(description, 0, now)
        state = TimerState(entry.description, now)
        self.save(state)
        logger.info("Timer started: %s", state.description)
        return state

    def pause(self, now: datetime | None = None) -> TimerState:
        state = self._running()
        if state.is_paused:
            raise ValidationError("The timer is already paused")
        state.paused_at = now or _now()
        self.save(state)
        logger.info("Timer paused: %s", state.description)
        return state

    def resume(self, now: datetime | None = None) -> TimerState:
        state = self._running()
        if not state.is_paused:
            raise ValidationError("The timer is not paused")
        now = now or _now()
        state.paused_seconds = int(state.paused(now).total_seconds())
        state.paused_at = None
        self.save(state)
        logger.info("Timer resumed: %s (%ss paused)", state.description, state.paused_seconds)
        return state

    def stop(self, store: LogStore, now: datetime | None = None) -> tuple[int, TimerState]:
        """Log the timed task to ``store`` and clear the timer.

        Returns the new entry's index and the final state. A pause in
        progress ends at ``now``.
        """
        state = self._running()
        now = now or _now()
        index = store.append(
            state.description,
            state.elapsed(now),
            state.started_at,
            paused=state.paused(now),
        )
        self.clear()
        logger.info("Timer stopped: %s logged as entry %d", state.description, index)
        return index, state
