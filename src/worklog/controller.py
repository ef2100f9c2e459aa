"""Interaction controller — the state machine behind the log viewer.

The controller consumes abstract events (keys, resizes, ticks, new-entry
requests), mutates the store and asks the presenter for fresh lines. It
never touches the terminal; the Textual screen translates real events
into these and draws whatever ``visible_rows`` returns.

Deleting is always two steps: a delete key only arms the confirmation,
and only a confirm key in that state calls ``store.delete``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

from worklog.errors import CorruptLogError, IndexOutOfRange, LogIOError, ValidationError
from worklog.models import DurationLike
from worklog.presenter import DEFAULT_SETTINGS, DisplaySettings, Mode, render
from worklog.services.store import LogStore
from worklog.services.summary import Grouping

logger = logging.getLogger(__name__)


# -- Events --


@dataclass(frozen=True)
class Key:
    code: str


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class AddEntry:
    description: str
    duration: DurationLike


Event = Union[Key, Resize, Tick, AddEntry]


class Action(Enum):
    UP = "up"
    DOWN = "down"
    TOP = "top"
    BOTTOM = "bottom"
    DELETE = "delete"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    TOGGLE_SUMMARY = "toggle_summary"
    CYCLE_GROUPING = "cycle_grouping"
    QUIT = "quit"


KEYMAP: dict[str, Action] = {
    "up": Action.UP,
    "k": Action.UP,
    "down": Action.DOWN,
    "j": Action.DOWN,
    "home": Action.TOP,
    "g": Action.TOP,
    "end": Action.BOTTOM,
    "G": Action.BOTTOM,
    "delete": Action.DELETE,
    "d": Action.DELETE,
    "x": Action.DELETE,
    "y": Action.CONFIRM,
    "enter": Action.CONFIRM,
    "n": Action.CANCEL,
    "escape": Action.CANCEL,
    "s": Action.TOGGLE_SUMMARY,
    "c": Action.CYCLE_GROUPING,
    "q": Action.QUIT,
}

NAV_ACTIONS = {Action.UP, Action.DOWN, Action.TOP, Action.BOTTOM}


@dataclass
class ViewState:
    width: int = 80
    height: int = 24
    selected_index: int | None = None
    mode: Mode = Mode.LISTING
    pending_index: int | None = None
    grouping: Grouping = Grouping.DAY
    # First entry row shown when the listing is taller than the view
    offset: int = 0
    message: str = ""
    message_is_error: bool = False


class Controller:
    """Drives selection, deletion and summary toggling against a store."""

    def __init__(
        self,
        store: LogStore,
        settings: DisplaySettings = DEFAULT_SETTINGS,
        width: int = 80,
        height: int = 24,
    ) -> None:
        self.store = store
        self.settings = settings
        self.state = ViewState(width=max(width, 0), height=max(height, 1), grouping=settings.grouping)
        self.running = True
        if len(store):
            # Start on the most recent entry
            self.state.selected_index = len(store) - 1
        self._scroll_into_view()

    @property
    def mode(self) -> Mode:
        return self.state.mode

    def handle(self, event: Event) -> bool:
        """Process one event. Returns False once the controller has quit."""
        if not self.running:
            return False

        if isinstance(event, Resize):
            self.state.width = max(event.width, 0)
            self.state.height = max(event.height, 1)
        elif isinstance(event, Tick):
            pass
        elif isinstance(event, AddEntry):
            self._add(event)
        elif isinstance(event, Key):
            action = KEYMAP.get(event.code)
            if action is Action.QUIT:
                self._quit()
            elif action is not None:
                self._dispatch(action)
        else:
            raise TypeError(f"Unknown event: {event!r}")

        self._scroll_into_view()
        return self.running

    # -- Transitions --

    def _dispatch(self, action: Action) -> None:
        mode = self.state.mode
        if mode is Mode.LISTING:
            if action in NAV_ACTIONS:
                self._move(action)
            elif action is Action.DELETE:
                self._arm_delete()
            elif action is Action.TOGGLE_SUMMARY:
                self.state.mode = Mode.SUMMARY
        elif mode is Mode.CONFIRM_DELETE:
            if action is Action.CONFIRM:
                self._confirm_delete()
            elif action is Action.CANCEL:
                self.state.pending_index = None
                self.state.mode = Mode.LISTING
                self._notify("Delete cancelled")
        elif mode is Mode.SUMMARY:
            if action is Action.TOGGLE_SUMMARY or action in NAV_ACTIONS:
                self.state.mode = Mode.LISTING
            elif action is Action.CYCLE_GROUPING:
                self.state.grouping = self.state.grouping.next()

    def _move(self, action: Action) -> None:
        count = len(self.store)
        if not count:
            self.state.selected_index = None
            return
        current = self.state.selected_index
        if current is None:
            current = 0 if action in (Action.DOWN, Action.TOP) else count - 1
        elif action is Action.UP:
            current -= 1
        elif action is Action.DOWN:
            current += 1
        elif action is Action.TOP:
            current = 0
        else:
            current = count - 1
        self.state.selected_index = min(max(current, 0), count - 1)

    def _arm_delete(self) -> None:
        index = self.state.selected_index
        if index is None:
            return
        self.state.pending_index = index
        self.state.mode = Mode.CONFIRM_DELETE

    def _confirm_delete(self) -> None:
        index = self.state.pending_index
        self.state.pending_index = None
        self.state.mode = Mode.LISTING
        if index is None:
            return
        try:
            removed = self.store.delete(index)
        except (IndexOutOfRange, CorruptLogError, LogIOError) as exc:
            logger.warning("Delete of entry %s failed: %s", index, exc)
            self._notify(str(exc), error=True)
        else:
            self._notify(f"Deleted entry {removed.index}: {removed.description}")
        self._clamp_selection()

    def _add(self, event: AddEntry) -> None:
        if self.state.mode is not Mode.LISTING:
            self._notify("Finish the current action before adding an entry", error=True)
            return
        try:
            index = self.store.append(event.description, event.duration)
        except (ValidationError, LogIOError) as exc:
            logger.warning("Add failed: %s", exc)
            self._notify(str(exc), error=True)
            return
        self.state.selected_index = index
        self._notify(f"Added entry {index}")

    def _quit(self) -> None:
        self.state.pending_index = None
        self.running = False
        # Flush errors propagate to the caller
        self.store.flush()

    def _clamp_selection(self) -> None:
        count = len(self.store)
        if not count:
            self.state.selected_index = None
        elif self.state.selected_index is None:
            self.state.selected_index = 0
        else:
            self.state.selected_index = min(self.state.selected_index, count - 1)

    def _notify(self, message: str, error: bool = False) -> None:
        self.state.message = message
        self.state.message_is_error = error

    # -- Rendering --

    def lines(self) -> list[str]:
        """Every line of the current view, at the current width."""
        state = self.state
        settings = self.settings
        if state.grouping is not settings.grouping:
            settings = replace(settings, grouping=state.grouping)
        return render(
            self.store.list(),
            state.width,
            state.selected_index,
            state.mode,
            pending_index=state.pending_index,
            settings=settings,
        )

    def _listing_rows(self) -> int:
        """Rows available for entries once the prompt line is reserved."""
        reserved = 1 if self.state.mode is Mode.CONFIRM_DELETE else 0
        return max(self.state.height - reserved, 1)

    def _scroll_into_view(self) -> None:
        rows = self._listing_rows()
        count = len(self.store)
        selected = self.state.selected_index
        offset = self.state.offset
        if selected is not None:
            if selected < offset:
                offset = selected
            elif selected >= offset + rows:
                offset = selected - rows + 1
        self.state.offset = min(max(offset, 0), max(count - rows, 0))

    def visible_rows(self) -> list[tuple[str, bool]]:
        """Lines that fit in ``height``, each flagged when it is the selection."""
        lines = self.lines()
        state = self.state
        if state.mode is Mode.SUMMARY:
            return [(line, False) for line in lines[: state.height]]

        count = len(self.store)
        body, extra = lines[: max(count, 1)], lines[max(count, 1):]
        rows = self._listing_rows()
        start = state.offset if count else 0
        visible = []
        for position, line in enumerate(body[start:start + rows], start=start):
            visible.append((line, count > 0 and position == state.selected_index))
        visible.extend((line, False) for line in extra)
        return visible
