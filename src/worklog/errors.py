"""Error taxonomy shared by the store, the controller and the CLI."""

from __future__ import annotations

from pathlib import Path


class WorklogError(Exception):
    """Base class for every error worklog raises on purpose."""


class ValidationError(WorklogError, ValueError):
    """Bad user input. Nothing was changed."""


class IndexOutOfRange(WorklogError, IndexError):
    """An index does not address a live entry."""

    def __init__(self, index: int, length: int) -> None:
        self.index = index
        self.length = length
        if length:
            detail = f"valid range is 0..{length - 1}"
        else:
            detail = "the log is empty"
        super().__init__(f"No entry at index {index} ({detail})")


class LogIOError(WorklogError):
    """Reading or writing the backing file failed.

    The in-memory log is left at its last state that matched the disk.
    The underlying ``OSError`` is chained as ``__cause__``.
    """

    def __init__(self, path: Path, action: str, error: OSError) -> None:
        self.path = path
        self.action = action
        self.error = error
        super().__init__(f"Could not {action} {path}: {error.strerror or error}")


class CorruptLogError(WorklogError):
    """A persisted record could not be parsed.

    Carries enough context for the caller to pick a recovery: abort, skip
    the record (``load(skip_corrupt=True)``) or rewrite without it
    (``LogStore.repair``).
    """

    def __init__(self, path: Path | None, line: int, record: list[str], reason: str) -> None:
        self.path = path
        self.line = line
        self.record = list(record)
        self.reason = reason
        where = f"{path}:{line}" if path else f"line {line}"
        super().__init__(f"{where}: {reason} (record: {','.join(self.record)!r})")


# Process exit codes used by the CLI and the TUI
EXIT_OK = 0
EXIT_USAGE = 2
EXIT_CODES: dict[type[WorklogError], int] = {
    ValidationError: 3,
    IndexOutOfRange: 4,
    LogIOError: 5,
    CorruptLogError: 6,
}


def exit_code_for(exc: WorklogError) -> int:
    for cls, code in EXIT_CODES.items():
        if isinstance(exc, cls):
            return code
    return 1
