# src/dynamic_todo/tasks/task_api.py

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any

from ..core.state import AppState
from ..errors import ToggleError
from .task_filters import get_visible_tasks
from .task_models import PluginSettings, Task
from .task_toggler import toggle_task

logger = logging.getLogger(__name__)


async def rebuild_all(state: AppState) -> bool:
    return await state.task_store.rebuild_all()


async def update_one(state: AppState, path: str) -> bool:
    return await state.task_store.update_one(path)


async def toggle(state: AppState, task: Task, new_state: bool, *, today: str | None = None) -> Task:
    """
    Toggle a task and write the note back.

    On ToggleError the whole note is re-scanned so the store matches what is
    on disk again (the line may have moved or gone), then the error is
    re-raised for the caller to report. If a rebuild is running the re-scan
    is queued on the debouncer instead.
    """
    try:
        return await toggle_task(state.host, task, new_state, state.plugin_settings, today=today)
    except ToggleError:
        store = state.task_store
        if not await store.update_one(task.source_file.path, force=True):
            logger.debug("Re-sync of %s deferred: rebuild in progress", task.source_file.path)
            store.debouncer.trigger()
        raise


def visible_tasks(state: AppState, *, today: date | None = None) -> list[Task]:
    """Current filtered + sorted view; also remembered on state.view for index-based commands."""
    ps = state.plugin_settings
    tasks = get_visible_tasks(
        state.task_store.tasks,
        state.view.filters(ps),
        ps.sort_preference,
        grouped=ps.show_file_headers,
        move_completed_to_bottom=ps.move_completed_tasks_to_bottom,
        today=today,
    )
    state.view.visible = tasks
    return tasks


async def update_plugin_settings(state: AppState, **changes: Any) -> PluginSettings:
    """Create a new settings snapshot with `changes` and rebuild the index."""
    new_settings = replace(state.plugin_settings, **changes)
    await state.task_store.apply_settings(new_settings)
    logger.info("Plugin settings updated: %s", ", ".join(sorted(changes)))
    return new_settings
