# src/dynamic_todo/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..tasks.task_models import PluginSettings, Task, TaskFilters
from ..tasks.task_store import TaskStore
from .ports import NoteHost


@dataclass
class ViewState:
    """Presentation preferences that are not persisted with the plugin settings."""

    search_query: str = ""
    hide_completed: bool = False

    # Last rendered order; "/toggle N" refers to it.
    visible: list[Task] = field(default_factory=list)

    def filters(self, plugin_settings: PluginSettings) -> TaskFilters:
        return TaskFilters(
            search=self.search_query or None,
            hide_completed=self.hide_completed,
            archive_completed_older_than=plugin_settings.archive_completed_older_than,
        )


@dataclass
class AppState:
    # Process settings (config.Settings or a test stand-in).
    settings: object

    host: NoteHost
    task_store: TaskStore
    view: ViewState = field(default_factory=ViewState)

    @property
    def plugin_settings(self) -> PluginSettings:
        return self.task_store.settings
