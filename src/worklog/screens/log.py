"""Log screen — the entry list, driven by the interaction controller.

This screen owns no state of its own. Every key and resize becomes a
controller event, and every redraw is whatever the controller reports
as visible.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from rich.text import Text
from textual import events
from textual.app import ComposeResult
from textual.screen import Screen
from textual.widgets import Static

from worklog.config import save_config
from worklog.controller import KEYMAP, AddEntry, Controller, Key, Resize, Tick
from worklog.errors import LogIOError, exit_code_for
from worklog.models import format_duration
from worklog.presenter import Mode
from worklog.screens.add import AddEntryScreen
from worklog.screens.guide import GuideScreen
from worklog.services.summary import local_date, summarize
from worklog.themes import error_style, header_style, next_theme, selected_style

logger = logging.getLogger(__name__)

# Header, status line and key hints
CHROME_ROWS = 3
TICK_SECONDS = 30.0

KEY_HINTS = {
    Mode.LISTING: "↑↓ move  a add  d delete  s summary  t theme  ? help  q quit",
    Mode.CONFIRM_DELETE: "y confirm delete  n cancel",
    Mode.SUMMARY: "c change grouping  s back  q quit",
}


class LogScreen(Screen):
    """Main screen: header, entry rows, status line, key hints."""

    def __init__(self, controller: Controller) -> None:
        super().__init__()
        self.controller = controller

    def compose(self) -> ComposeResult:
        yield Static("", id="log-header")
        yield Static("", id="log-body")
        yield Static("", id="log-status")
        yield Static("", id="log-keys")

    def on_mount(self) -> None:
        self._resize(self.size.width, self.size.height)
        self.set_interval(TICK_SECONDS, self._tick)

    def on_screen_resume(self) -> None:
        self.refresh_view()

    # -- Event translation --

    def on_resize(self, event: events.Resize) -> None:
        self._resize(event.size.width, event.size.height)

    def _resize(self, width: int, height: int) -> None:
        self.controller.handle(Resize(width, max(height - CHROME_ROWS, 1)))
        self.refresh_view()

    def _tick(self) -> None:
        self.controller.handle(Tick())
        self.refresh_view()

    def on_key(self, event: events.Key) -> None:
        code = event.character if event.is_printable and event.character else event.key
        listing = self.controller.mode is Mode.LISTING

        if code == "a" and listing:
            self.app.push_screen(AddEntryScreen(), self._on_add_result)
        elif code == "?" and listing:
            self.app.push_screen(GuideScreen())
        elif code == "t" and listing:
            self._cycle_theme()
        elif code in KEYMAP:
            self.send(Key(code))
        else:
            return
        event.stop()
        event.prevent_default()

    def send(self, event: Key | AddEntry) -> None:
        """Hand an event to the controller, then redraw or exit."""
        try:
            running = self.controller.handle(event)
        except LogIOError as exc:
            logger.error("Quit flush failed: %s", exc)
            self.app.exit(return_code=exit_code_for(exc), message=str(exc))
            return
        if not running:
            self.app.exit()
            return
        if self.controller.state.message_is_error:
            self.notify(self.controller.state.message, severity="error")
        self.refresh_view()

    def _on_add_result(self, result: tuple[str, timedelta] | None) -> None:
        if result is None:
            return
        description, duration = result
        self.send(AddEntry(description, duration))

    def _cycle_theme(self) -> None:
        theme = self.app.config.theme
        theme["name"] = next_theme(theme.get("name", "default"))
        try:
            save_config(self.app.config)
        except OSError as exc:
            logger.warning("Could not save theme choice: %s", exc)
            self.notify(f"Theme not saved: {exc}", severity="warning")
        self.app.refresh_css()
        self.refresh_view()
        self.notify(f"Theme: {theme['name']}")

    # -- Drawing --

    def refresh_view(self) -> None:
        if not self.is_mounted:
            return
        theme = self.app.config.theme
        state = self.controller.state
        store = self.controller.store

        self.query_one("#log-header", Static).update(
            Text(f"  ██ worklog  {store.path}", style=header_style(theme), end="")
        )

        body = Text(end="")
        for i, (line, selected) in enumerate(self.controller.visible_rows()):
            if i:
                body.append("\n")
            if selected:
                body.append(line, style=selected_style(theme))
            elif state.mode is Mode.CONFIRM_DELETE and line.startswith("Delete"):
                body.append(line, style=error_style(theme))
            else:
                body.append(line)
        self.query_one("#log-body", Static).update(body)

        self.query_one("#log-status", Static).update(self._status_text())
        self.query_one("#log-keys", Static).update(Text(KEY_HINTS[state.mode], style="dim", end=""))

    def _status_text(self) -> Text:
        state = self.controller.state
        tz = self.controller.settings.tz
        entries = self.controller.store.list()
        today = local_date(datetime.now(timezone.utc), tz)
        today_total = summarize(entries, "day", tz).get(today, timedelta(0))

        status = Text(end="")
        status.append(f" {len(entries)} entries", style="bold")
        status.append(f"  today {format_duration(today_total)}", style="cyan")
        if state.message:
            style = error_style(self.app.config.theme) if state.message_is_error else "dim"
            status.append(f"  {state.message}", style=style)
        return status
