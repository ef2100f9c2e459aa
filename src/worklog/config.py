"""Configuration loading, path resolution and logging setup for worklog.

Settings live in ``~/.worklog/config.yaml`` (override the directory with
``WORKLOG_HOME``). A missing or broken file never stops the app: the
problem is logged and defaults are used.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from worklog.presenter import DisplaySettings
from worklog.services.summary import Grouping

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_file_handler: logging.Handler | None = None


def worklog_home() -> Path:
    """Return the worklog home directory."""
    env = os.environ.get("WORKLOG_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".worklog"


def config_path() -> Path:
    return worklog_home() / "config.yaml"


def timer_path() -> Path:
    """Return the path to the running-timer state file."""
    return worklog_home() / "timer.json"


def default_log_file() -> str:
    return str(worklog_home() / "worklog.csv")


@dataclass
class Config:
    """Application configuration."""

    log_file: str = field(default_factory=default_log_file)
    date_format: str = "%Y-%m-%d %H:%M"
    timezone: str = ""
    summary_grouping: str = Grouping.DAY.value
    log_level: str = "INFO"
    theme: dict = field(default_factory=lambda: {"name": "default"})

    @property
    def log_path(self) -> Path:
        """Path of the CSV file backing the log."""
        return Path(self.log_file).expanduser()

    @property
    def tz(self) -> tzinfo | None:
        """The configured timezone, or None for local time."""
        if not self.timezone:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using local time", self.timezone)
            return None

    @property
    def grouping(self) -> Grouping:
        try:
            return Grouping(self.summary_grouping)
        except ValueError:
            logger.warning("Unknown summary_grouping %r, using 'day'", self.summary_grouping)
            return Grouping.DAY

    def display_settings(self) -> DisplaySettings:
        return DisplaySettings(date_format=self.date_format, tz=self.tz, grouping=self.grouping)


def load_config() -> Config:
    """Load config from $WORKLOG_HOME/config.yaml, falling back to defaults."""
    cfg = Config()
    path = config_path()
    if not path.exists():
        return cfg

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return cfg

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a mapping, got %s", path, type(data).__name__)
        return cfg

    for key in ("log_file", "date_format", "timezone", "summary_grouping", "log_level"):
        value = data.get(key)
        if value is None:
            continue
        setattr(cfg, key, str(value))

    if isinstance(data.get("theme"), dict):
        cfg.theme = data["theme"]

    return cfg


def save_config(config: Config) -> None:
    """Write config back to disk."""
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "log_file": config.log_file,
        "date_format": config.date_format,
        "timezone": config.timezone,
        "summary_grouping": config.summary_grouping,
        "log_level": config.log_level,
        "theme": config.theme,
    }
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    logger.info("Saved config to %s", path)


def setup_logging(config: Config) -> Path:
    """Send log records to $WORKLOG_HOME/worklog.log.

    The terminal belongs to the UI, so nothing is logged to stderr.
    """
    log_file = worklog_home() / "worklog.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    global _file_handler
    reset_logging()
    pkg_logger = logging.getLogger("worklog")
    pkg_logger.setLevel(level)
    _file_handler = logging.FileHandler(log_file, encoding="utf-8")
    _file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    pkg_logger.addHandler(_file_handler)
    return log_file


def reset_logging() -> None:
    """Detach and close the handler installed by ``setup_logging``."""
    global _file_handler
    if _file_handler is None:
        return
    logging.getLogger("worklog").removeHandler(_file_handler)
    _file_handler.close()
    _file_handler = None
