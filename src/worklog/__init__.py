"""worklog — personal task and time log with a terminal viewer."""

__version__ = "0.3.0"
