"""worklog — terminal viewer for the task/time log.

The Textual app wires configuration, the log store and the interaction
controller together and shows the log screen.
"""

from __future__ import annotations

import logging

from textual.app import App

from worklog.config import Config, load_config
from worklog.controller import Controller, Key
from worklog.errors import LogIOError, exit_code_for
from worklog.screens.log import LogScreen
from worklog.services.store import LogStore
from worklog.themes import css_variables

logger = logging.getLogger(__name__)


class WorklogApp(App):
    """The main worklog application."""

    TITLE = "worklog"
    CSS_PATH = "app.tcss"
    ENABLE_COMMAND_PALETTE = False

    def get_css_variables(self) -> dict[str, str]:
        """Textual defaults with the configured palette on top."""
        variables = super().get_css_variables()
        # Textual asks for these inside App.__init__, before config is set
        config = getattr(self, "config", None)
        if config is not None:
            variables.update(css_variables(config.theme))
        return variables

    def __init__(self, store: LogStore, config: Config | None = None) -> None:
        super().__init__()
        self.config = config or load_config()
        self.store = store
        self.controller = Controller(store, self.config.display_settings())

    def on_mount(self) -> None:
        self.push_screen(LogScreen(self.controller))

    async def action_quit(self) -> None:
        """Quit through the controller so the store is flushed first."""
        if self.controller.running:
            try:
                self.controller.handle(Key("q"))
            except LogIOError as exc:
                logger.error("Quit flush failed: %s", exc)
                self.exit(return_code=exit_code_for(exc), message=str(exc))
                return
        self.exit()
