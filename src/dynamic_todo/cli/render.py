# src/dynamic_todo/cli/render.py

"""Plain-text rendering of the task view for the console."""

from __future__ import annotations

import re
from datetime import date, datetime

from ..core.state import AppState
from ..tasks.task_api import visible_tasks
from ..tasks.task_filters import group_tasks_by_file, split_groups
from ..tasks.task_models import NoteGroup, NoteRef, PluginSettings, Task

WIKI_LINK_RE = re.compile(r"\[\[[^\]]+\]\]")
URL_RE = re.compile(r"https?://\S+")


def _fmt_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).astimezone().strftime("%b %d, %Y %H:%M")


def _link_hint(task: Task, ps: PluginSettings) -> str:
    if ps.enable_wiki_links and WIKI_LINK_RE.search(task.task_text):
        return "  [link]"
    if ps.enable_url_links and URL_RE.search(task.task_text):
        return "  [url]"
    return ""


def _task_line(n: int, task: Task, ps: PluginSettings, *, note_name: str | None = None) -> str:
    box = "[x]" if task.completed else "[ ]"
    line = f"  {n:>3}. {box} {task.task_text}"
    if task.completion_date:
        line += f" (done {task.completion_date})"
    if note_name:
        line += f"  · {note_name}"
    return line + _link_hint(task, ps)


def _note_header(note: NoteRef, ps: PluginSettings) -> str:
    header = f"{note.display_name} ({note.path})"
    if ps.show_created_modified_in_file_headers and note.created_at:
        header += f"  Created: {_fmt_ms(note.created_at)}"
        if note.modified_at and note.modified_at != note.created_at:
            header += f" · Last updated: {_fmt_ms(note.modified_at)}"
    return header


def render_task_list(state: AppState, *, today: date | None = None) -> str:
    """
    Render the current view as text and record the display order on
    state.view.visible so "/toggle N" addresses what the user sees.
    """
    ps = state.plugin_settings
    tasks = visible_tasks(state, today=today)

    if not tasks:
        state.view.visible = []
        if state.task_store.tasks:
            return "No tasks match the current filters."
        return f"No tasks found. Tag a note with {ps.note_tag} to include its tasks here."

    lines: list[str] = []
    order: list[Task] = []

    if not ps.show_file_headers:
        for t in tasks:
            order.append(t)
            lines.append(_task_line(len(order), t, ps, note_name=t.source_file.display_name))
        state.view.visible = order
        return "\n".join(lines)

    def _render_group(group: NoteGroup) -> None:
        lines.append(_note_header(group.note, ps))
        for t in group.open:
            order.append(t)
            lines.append(_task_line(len(order), t, ps))
        if group.completed:
            lines.append(f"    Completed Tasks ({len(group.completed)})")
            for t in group.completed:
                order.append(t)
                lines.append(_task_line(len(order), t, ps))

    active, completed_notes = split_groups(group_tasks_by_file(tasks))
    for group in active:
        _render_group(group)
    if completed_notes:
        lines.append("")
        lines.append(f"Completed notes ({len(completed_notes)})")
        for group in completed_notes:
            _render_group(group)

    state.view.visible = order
    return "\n".join(lines)

