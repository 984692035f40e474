# src/dynamic_todo/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The engine depends on a NoteHost Protocol instead of a concrete note store.
The host owns persistence and change detection; the core only reads, writes
and stats notes by path.
"""

from typing import Awaitable, Callable, Protocol

from ..tasks.task_models import NoteChange, NoteInfo, NoteStat, Task


class NoteHost(Protocol):
    """
    Host-side note storage.

    read_note_text must reflect all of this process' prior writes.
    write_note_text / stat_note raise OSError when the note is unavailable.
    """

    def read_note_text(self, path: str) -> Awaitable[str]: ...

    def write_note_text(self, path: str, text: str) -> Awaitable[None]: ...

    def stat_note(self, path: str) -> Awaitable[NoteStat]: ...

    def enumerate_notes(self) -> list[NoteInfo]: ...


class ChangeSink(Protocol):
    """Where host change notifications are delivered (TaskStore implements this)."""

    def handle_event(self, event: NoteChange) -> Awaitable[None]: ...


TasksListener = Callable[[list[Task]], None]
