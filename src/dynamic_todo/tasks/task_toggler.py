# src/dynamic_todo/tasks/task_toggler.py

from __future__ import annotations

"""
Task toggling.

Rewrites the checkbox (and the trailing completion annotation) of a single
line in the note's current text, then writes the note back through the host.
Pure string/regex edits: the rest of the line and every other line are left
byte-for-byte untouched.
"""

import logging
import re
from collections.abc import Callable
from datetime import date

from ..core.ports import NoteHost
from ..errors import ToggleError
from .line_classifier import box_offset, is_task_line
from .task_extractor import COMPLETION_RE, build_task
from .task_models import CHECKED_BOXES, COMPLETION_GLYPH, UNCHECKED_BOX, PluginSettings, Task, now_ms

logger = logging.getLogger(__name__)

_CHECKED_BOX_RE = re.compile(r"\[[xX]\]")


def _today() -> str:
    return date.today().isoformat()


def _set_box(line: str, offset: int, completed: bool) -> str:
    """Rewrite the checkbox at `offset`; without a box there, the first one in the line."""
    box = line[offset : offset + 3] if offset >= 0 else ""
    if completed:
        if box == UNCHECKED_BOX:
            return line[:offset] + CHECKED_BOXES[0] + line[offset + 3 :]
        if box in CHECKED_BOXES:
            return line
        return line.replace(UNCHECKED_BOX, CHECKED_BOXES[0], 1)

    if box in CHECKED_BOXES:
        return line[:offset] + UNCHECKED_BOX + line[offset + 3 :]
    if box == UNCHECKED_BOX:
        return line
    return _CHECKED_BOX_RE.sub(UNCHECKED_BOX, line, count=1)


def toggle_line(
    line: str,
    completed: bool,
    *,
    task_prefix: str = "- [ ]",
    today: str | None = None,
) -> tuple[str, str | None]:
    """
    Return (new_line, completion_date) for `line` set to `completed`.

    >>> toggle_line("- [ ] Buy milk", True, today="2024-03-05")
    ('- [x] Buy milk ✅ 2024-03-05', '2024-03-05')
    """
    offset = box_offset(line, task_prefix)

    new_line = _set_box(line, offset, completed)
    if completed:
        m = COMPLETION_RE.search(new_line)
        if m:
            return new_line, m.group("date")
        stamp = today or _today()
        return f"{new_line.rstrip()} {COMPLETION_GLYPH} {stamp}", stamp

    new_line = COMPLETION_RE.sub("", new_line).rstrip()
    return new_line, None


def _locate_line(lines: list[str], task: Task, settings: PluginSettings) -> int:
    """
    Find the line holding `task` in freshly read text.

    The recorded line number wins when it still holds the same task text;
    otherwise a unique task line with the same text elsewhere in the note is used.
    """
    idx = task.line_number
    if 0 <= idx < len(lines):
        current = build_task(task.source_file, lines[idx], idx, settings)
        if current is not None and current.task_text == task.task_text:
            return idx

    candidates = []
    for i, line in enumerate(lines):
        if not is_task_line(line, settings.task_prefix):
            continue
        found = build_task(task.source_file, line, i, settings)
        if found is not None and found.task_text == task.task_text:
            candidates.append(i)
    if len(candidates) == 1:
        logger.info(
            "Task moved in %s: line %d -> %d", task.source_file.path, task.line_number + 1, candidates[0] + 1
        )
        return candidates[0]

    reason = "task line not found" if not candidates else "task text is ambiguous"
    raise ToggleError(task.source_file.path, task.line_number, reason)


async def toggle_task(
    host: NoteHost,
    task: Task,
    completed: bool,
    settings: PluginSettings,
    *,
    today: str | None = None,
    clock: Callable[[], int] = now_ms,
) -> Task:
    """
    Set `task` to `completed` in its note and return the (same, updated) Task.

    The note text is read fresh on every call. The Task's fields are updated
    before the write so the caller's view and the grace window see the new
    state; if the write fails they are restored and ToggleError is raised.
    """
    path = task.source_file.path
    try:
        content = await host.read_note_text(path)
    except OSError as e:
        raise ToggleError(path, task.line_number, f"read failed: {e}") from e

    lines = content.split("\n")
    idx = _locate_line(lines, task, settings)

    new_line, completion_date = toggle_line(
        lines[idx], completed, task_prefix=settings.task_prefix, today=today
    )
    changed = new_line != lines[idx]
    lines[idx] = new_line

    previous = (task.line_number, task.completed, task.completion_date, task.last_updated, task.last_toggled)
    now = clock()
    task.line_number = idx
    task.completed = completed
    task.completion_date = completion_date
    task.last_updated = now
    task.last_toggled = now

    if not changed:
        logger.debug("Task already %s: %s:%d", "done" if completed else "open", path, idx + 1)
        return task

    try:
        await host.write_note_text(path, "\n".join(lines))
    except Exception as e:
        (task.line_number, task.completed, task.completion_date, task.last_updated, task.last_toggled) = previous
        logger.warning("Toggle write failed %s:%d: %s", path, idx + 1, e)
        raise ToggleError(path, idx, f"write failed: {e}") from e

    logger.info("Task %s: %s:%d", "completed" if completed else "reopened", path, idx + 1)
    return task
