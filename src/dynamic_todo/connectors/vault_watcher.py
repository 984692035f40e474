# src/dynamic_todo/connectors/vault_watcher.py

from __future__ import annotations

"""
Vault watcher.

watchdog delivers filesystem events on its observer thread. The handler:
- keeps only markdown notes outside hidden directories,
- maps them to NoteChange events (created/modified -> modified, deleted -> deleted,
  moved -> deleted old path + modified new path),
- hands each event to the asyncio loop, where the sink (the TaskStore) runs it.

New notes are reported as "modified": for the store an unknown path is an
untracked note and goes through the debounced rebuild.
"""

import asyncio
import logging
import os
from concurrent.futures import Future
from pathlib import Path, PurePosixPath

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..core.ports import ChangeSink
from ..tasks.task_models import ChangeKind, NoteChange

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"


class VaultEventHandler(FileSystemEventHandler):
    def __init__(self, root: str | Path, sink: ChangeSink, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self._root = Path(root).expanduser().resolve()
        self._sink = sink
        self._loop = loop

    @property
    def root(self) -> Path:
        return self._root

    def note_path(self, src: str | bytes) -> str | None:
        """Vault-relative POSIX path of a note, or None for anything that is not a visible note."""
        full = Path(os.fsdecode(src))
        try:
            rel = PurePosixPath(full.resolve().relative_to(self._root).as_posix())
        except ValueError:
            return None
        if rel.suffix.lower() != NOTE_SUFFIX:
            return None
        if any(part.startswith(".") for part in rel.parts):
            return None
        return str(rel)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(ChangeKind.MODIFIED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(ChangeKind.MODIFIED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            self._emit_folder_change(event.src_path)
            return
        self._emit(ChangeKind.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            self._emit_folder_change(event.src_path)
            return
        # Atomic saves land here too: hidden temp file -> note.
        self._emit(ChangeKind.DELETED, event.src_path)
        self._emit(ChangeKind.MODIFIED, event.dest_path)

    def _emit_folder_change(self, src: str | bytes) -> Future[None] | None:
        """A folder vanished or moved: every note under it changed path. A deletion forces a full rebuild."""
        full = Path(os.fsdecode(src))
        try:
            rel = full.resolve().relative_to(self._root)
        except ValueError:
            return None
        if any(part.startswith(".") for part in rel.parts):
            return None
        return self._submit(NoteChange(ChangeKind.DELETED, rel.as_posix()))

    def _emit(self, kind: ChangeKind, src: str | bytes) -> Future[None] | None:
        path = self.note_path(src)
        if path is None:
            return None
        return self._submit(NoteChange(kind, path))

    def _submit(self, event: NoteChange) -> Future[None] | None:
        logger.debug("change %s %s", event.kind.value, event.path)
        if self._loop.is_closed():
            return None
        return asyncio.run_coroutine_threadsafe(self._deliver(event), self._loop)

    async def _deliver(self, event: NoteChange) -> None:
        try:
            await self._sink.handle_event(event)
        except Exception:
            logger.exception("handle_event failed kind=%s path=%s", event.kind.value, event.path)


def start_vault_watcher(
    root: str | Path,
    sink: ChangeSink,
    loop: asyncio.AbstractEventLoop,
) -> Observer:
    """Start a recursive watchdog observer on `root`. Stop it with stop_vault_watcher()."""
    handler = VaultEventHandler(root, sink, loop)
    observer = Observer()
    observer.schedule(handler, str(handler.root), recursive=True)
    observer.daemon = True
    observer.start()
    logger.info("Vault watcher started on %s", root)
    return observer


def stop_vault_watcher(observer: Observer, *, timeout: float = 5.0) -> None:
    observer.stop()
    observer.join(timeout)
    logger.info("Vault watcher stopped.")
