"""Add-entry modal — collects a description and a duration."""

from __future__ import annotations

from datetime import timedelta

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Label, Static

from worklog.errors import ValidationError
from worklog.models import parse_duration


class AddEntryScreen(ModalScreen[tuple[str, timedelta] | None]):
    """Modal form. Dismisses with ``(description, duration)`` or None."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    DEFAULT_CSS = """
    AddEntryScreen {
        align: center middle;
    }
    #add-container {
        width: 60;
        height: auto;
        background: $surface;
        border: thick $primary;
        padding: 1 2;
    }
    #add-title {
        text-align: center;
        text-style: bold;
        margin-bottom: 1;
    }
    #add-error {
        color: $error;
        height: auto;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="add-container"):
            yield Label("New entry", id="add-title")
            yield Input(placeholder="What did you work on?", id="add-description")
            yield Input(placeholder="How long? e.g. 1h30m, 45m, 1:30", id="add-duration")
            yield Static("", id="add-error")

    def on_mount(self) -> None:
        self.query_one("#add-description", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "add-description":
            self.query_one("#add-duration", Input).focus()
            return
        self._submit()

    def _submit(self) -> None:
        description = self.query_one("#add-description", Input).value.strip()
        error = self.query_one("#add-error", Static)
        if not description:
            error.update("Description cannot be empty")
            self.query_one("#add-description", Input).focus()
            return
        try:
            duration = parse_duration(self.query_one("#add-duration", Input).value)
        except ValidationError as exc:
            error.update(str(exc))
            return
        self.dismiss((description, duration))

    def action_cancel(self) -> None:
        self.dismiss(None)
