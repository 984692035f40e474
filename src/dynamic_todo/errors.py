# src/dynamic_todo/errors.py

"""Error types raised by the task engine."""

from __future__ import annotations


class DynamicTodoError(RuntimeError):
    """Base class for engine errors."""


class ConfigError(DynamicTodoError):
    """Raised when configuration is missing or invalid."""


class ExtractionError(DynamicTodoError):
    """A single note could not be read or parsed. The note contributes zero tasks."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class ToggleError(DynamicTodoError):
    """
    A task could not be toggled (read, locate or write failed).

    The Task record is left as it was before the call; callers must revert
    any optimistic presentation state and notify the user.
    """

    def __init__(self, path: str, line_number: int, message: str) -> None:
        super().__init__(f"{path}:{line_number + 1}: {message}")
        self.path = path
        self.line_number = line_number
