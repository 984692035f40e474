# src/dynamic_todo/tasks/task_store.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import PurePosixPath

from ..core.debounce import Debouncer
from ..core.ports import NoteHost, TasksListener
from ..errors import ExtractionError
from .task_extractor import process_file
from .task_models import ChangeKind, NoteChange, NoteInfo, PluginSettings, Task, now_ms

logger = logging.getLogger(__name__)

SELF_EDIT_GRACE_MS = 500
REBUILD_DEBOUNCE_MS = 100


class TaskStore:
    """
    In-memory task collection across all notes.

    Two rebuild-class operations share one in-progress flag:
    - rebuild_all(): re-scan every note and replace the collection,
    - update_one(path): re-scan one note and splice its tasks in.
    A request arriving while one of them runs is dropped (returns False),
    not queued.

    Task objects handed out are the ones stored; toggles update them in place.
    """

    def __init__(
        self,
        host: NoteHost,
        settings: PluginSettings,
        *,
        vault_name: str = "",
        self_edit_grace_ms: int = SELF_EDIT_GRACE_MS,
        rebuild_debounce_ms: int = REBUILD_DEBOUNCE_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._host = host
        self._settings = settings
        self._vault_name = vault_name
        self._grace_ms = max(0, int(self_edit_grace_ms))
        self._clock = clock
        self._tasks: list[Task] = []
        self._busy = False
        self._listeners: list[TasksListener] = []
        self._debouncer = Debouncer(self.rebuild_all, max(0, int(rebuild_debounce_ms)) / 1000.0)

    # ---- state ----

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def settings(self) -> PluginSettings:
        return self._settings

    @property
    def vault_name(self) -> str:
        return self._vault_name

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    def tasks_for(self, path: str) -> list[Task]:
        return [t for t in self._tasks if t.source_file.path == path]

    def is_tracked(self, path: str) -> bool:
        return any(t.source_file.path == path for t in self._tasks)

    def subscribe(self, listener: TasksListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.tasks
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Task listener failed")

    # ---- rebuild-class operations ----

    async def rebuild_all(self) -> bool:
        """Re-scan every note. Returns False if dropped because another rebuild is running."""
        if self._busy:
            logger.debug("Rebuild requested while busy; dropped")
            return False

        self._busy = True
        try:
            settings = self._settings
            try:
                notes = list(self._host.enumerate_notes())
            except Exception:
                logger.exception("Note enumeration failed; keeping current tasks")
                return True

            results = await asyncio.gather(
                *(
                    process_file(self._host, info, settings, vault_name=self._vault_name, clock=self._clock)
                    for info in notes
                )
            )
            tasks = [task for file_tasks in results for task in file_tasks]
            self._tasks = tasks
            logger.info("Rebuilt task index: %d task(s) in %d note(s)", len(tasks), len(notes))
        finally:
            self._busy = False

        self._notify()
        return True

    async def update_one(self, path: str, *, force: bool = False) -> bool:
        """
        Re-scan one note and splice its tasks into the collection.

        Skipped (returns True, nothing re-read) while a task of that note is
        inside the self-edit grace window: the change is our own toggle write.
        force=True ignores the window (re-sync after a failed toggle).
        Returns False if dropped because a rebuild is running.
        """
        if not force and self._within_grace(path):
            logger.debug("Skipping re-scan of %s (own edit)", path)
            return True

        if self._busy:
            logger.debug("Update of %s requested while busy; dropped", path)
            return False

        self._busy = True
        try:
            info = self._note_info(path)
            fresh = await process_file(
                self._host, info, self._settings, vault_name=self._vault_name, clock=self._clock
            )
            for task in fresh:
                task.completed = bool(task.completed)
            self._tasks = [t for t in self._tasks if t.source_file.path != path] + fresh
            logger.debug("Updated %s: %d task(s)", path, len(fresh))
        finally:
            self._busy = False

        self._notify()
        return True

    # ---- other operations ----

    async def apply_settings(self, settings: PluginSettings) -> bool:
        """Swap the settings snapshot and rebuild. If the rebuild is dropped, a debounced one is queued."""
        self._settings = settings
        rebuilt = await self.rebuild_all()
        if not rebuilt:
            self._debouncer.trigger()
        return rebuilt

    async def handle_event(self, event: NoteChange) -> None:
        if event.kind == ChangeKind.DELETED:
            logger.debug("Note deleted: %s", event.path)
            if not await self.rebuild_all():
                self._debouncer.trigger()
            return

        if self.is_tracked(event.path):
            if not await self.update_one(event.path):
                self._debouncer.trigger()
            return

        # Untracked note changed: may have become a task note. Coalesce bursts.
        self._debouncer.trigger()

    async def close(self) -> None:
        self._debouncer.cancel()

    # ---- helpers ----

    def _within_grace(self, path: str) -> bool:
        if self._grace_ms <= 0:
            return False
        now = self._clock()
        return any(
            t.last_toggled is not None and now - t.last_toggled < self._grace_ms
            for t in self._tasks
            if t.source_file.path == path
        )

    def _note_info(self, path: str) -> NoteInfo:
        for t in self._tasks:
            if t.source_file.path == path:
                return NoteInfo(path=path, display_name=t.source_file.display_name)
        try:
            for info in self._host.enumerate_notes():
                if info.path == path:
                    return info
        except Exception as e:
            logger.warning("%s", ExtractionError(path, f"enumeration failed: {e}"))
        return NoteInfo(path=path, display_name=PurePosixPath(path).stem)
