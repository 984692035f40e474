# src/dynamic_todo/tasks/task_filters.py

from __future__ import annotations

"""
Filtering, sorting and grouping of tasks for presentation.

All functions are pure: they return new lists and never mutate Task records.
"""

from collections.abc import Iterable
from datetime import date

from .task_models import NoteGroup, SortDirection, SortField, SortPreference, Task, TaskFilters


def filter_by_search(tasks: Iterable[Task], search: str | None) -> list[Task]:
    """Case-insensitive substring match on task text or note path. None or "" passes everything."""
    if not search:
        return list(tasks)
    needle = search.casefold()
    return [t for t in tasks if needle in t.task_text.casefold() or needle in t.source_file.path.casefold()]


def _completed_days_ago(task: Task, today: date) -> int | None:
    if not task.completion_date:
        return None
    try:
        done = date.fromisoformat(task.completion_date)
    except ValueError:
        return None
    return (today - done).days


def filter_completed(
    tasks: Iterable[Task],
    *,
    hide_completed: bool,
    archive_completed_older_than: int = 0,
    today: date | None = None,
) -> list[Task]:
    """
    Hide completed tasks.

    hide_completed drops every completed task. Otherwise, with a positive
    archive threshold, completed tasks finished more than that many days ago
    are dropped; completed tasks without a date always stay.
    Open tasks are never filtered here.
    """
    if hide_completed:
        return [t for t in tasks if not t.completed]
    if archive_completed_older_than <= 0:
        return list(tasks)

    today = today or date.today()
    out: list[Task] = []
    for t in tasks:
        if t.completed:
            age = _completed_days_ago(t, today)
            if age is not None and age > archive_completed_older_than:
                continue
        out.append(t)
    return out


def _sort_key(field: SortField, grouped: bool):
    if field == SortField.CREATED:
        return lambda t: t.source_file.created_at
    if field == SortField.LAST_MODIFIED:
        return lambda t: t.source_file.modified_at
    if grouped:
        return lambda t: t.source_file.display_name.casefold()
    return lambda t: t.task_text.casefold()


def sort_tasks(tasks: Iterable[Task], sort: SortPreference, *, grouped: bool = True) -> list[Task]:
    """
    Stable sort. "name" means the note's display name when the view is grouped
    by note and the task text when it is a flat list.
    """
    return sorted(
        tasks,
        key=_sort_key(sort.field, grouped),
        reverse=sort.direction == SortDirection.DESC,
    )


def completed_to_bottom(tasks: Iterable[Task]) -> list[Task]:
    items = list(tasks)
    return [t for t in items if not t.completed] + [t for t in items if t.completed]


def group_tasks_by_file(tasks: Iterable[Task]) -> list[NoteGroup]:
    """Partition tasks per note, keeping first-seen note order and task order."""
    groups: dict[str, NoteGroup] = {}
    for t in tasks:
        group = groups.get(t.source_file.path)
        if group is None:
            group = groups[t.source_file.path] = NoteGroup(note=t.source_file)
        (group.completed if t.completed else group.open).append(t)
    return list(groups.values())


def split_groups(groups: Iterable[NoteGroup]) -> tuple[list[NoteGroup], list[NoteGroup]]:
    """(active note groups, completed note groups)."""
    active: list[NoteGroup] = []
    done: list[NoteGroup] = []
    for g in groups:
        (done if g.is_completed_note else active).append(g)
    return active, done


def get_visible_tasks(
    all_tasks: Iterable[Task],
    filters: TaskFilters,
    sort: SortPreference,
    *,
    grouped: bool = True,
    move_completed_to_bottom: bool = False,
    today: date | None = None,
) -> list[Task]:
    tasks = filter_by_search(all_tasks, filters.search)
    tasks = filter_completed(
        tasks,
        hide_completed=filters.hide_completed,
        archive_completed_older_than=filters.archive_completed_older_than,
        today=today,
    )
    tasks = sort_tasks(tasks, sort, grouped=grouped)
    if move_completed_to_bottom and not grouped:
        tasks = completed_to_bottom(tasks)
    return tasks
