# tests/test_filesystem_host.py

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pytest
from watchdog.events import (
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from dynamic_todo.connectors.filesystem_host import FilesystemNoteHost
from dynamic_todo.connectors.vault_watcher import VaultEventHandler, start_vault_watcher, stop_vault_watcher
from dynamic_todo.tasks.task_models import ChangeKind, NoteChange, PluginSettings
from dynamic_todo.tasks.task_store import TaskStore


def _vault(tmp_path: Path) -> Path:
    (tmp_path / "Projects").mkdir()
    (tmp_path / ".obsidian").mkdir()
    (tmp_path / "Home.md").write_text("#tasks\n- [ ] Buy milk\n", "utf-8")
    (tmp_path / "Projects" / "Plan.md").write_text("#tasks\n- [x] Draft ✅ 2024-01-02\n", "utf-8")
    (tmp_path / ".obsidian" / "workspace.md").write_text("- [ ] hidden", "utf-8")
    (tmp_path / "image.png").write_bytes(b"\x89PNG")
    return tmp_path


def test_enumerate_skips_hidden_and_non_notes(tmp_path: Path) -> None:
    host = FilesystemNoteHost(_vault(tmp_path))
    notes = host.enumerate_notes()
    assert [(n.path, n.display_name) for n in notes] == [("Home.md", "Home"), ("Projects/Plan.md", "Plan")]


def test_missing_vault_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(NotADirectoryError):
        FilesystemNoteHost(tmp_path / "nope")


@pytest.mark.asyncio
async def test_read_write_and_stat(tmp_path: Path) -> None:
    host = FilesystemNoteHost(_vault(tmp_path))

    assert await host.read_note_text("Home.md") == "#tasks\n- [ ] Buy milk\n"
    await host.write_note_text("Home.md", "#tasks\n- [x] Buy milk\n")
    assert (tmp_path / "Home.md").read_bytes() == b"#tasks\n- [x] Buy milk\n"
    assert not list(tmp_path.glob(".*.tmp"))

    stat = await host.stat_note("Projects/Plan.md")
    assert stat.created_at > 0
    assert stat.modified_at > 0


@pytest.mark.asyncio
async def test_paths_cannot_escape_vault(tmp_path: Path) -> None:
    vault = tmp_path / "vault"
    vault.mkdir()
    (tmp_path / "secret.md").write_text("x", "utf-8")
    host = FilesystemNoteHost(vault)

    with pytest.raises(PermissionError):
        await host.read_note_text("../secret.md")


@pytest.mark.asyncio
async def test_store_over_real_vault(tmp_path: Path) -> None:
    host = FilesystemNoteHost(_vault(tmp_path))
    store = TaskStore(host, PluginSettings(), vault_name="Vault")

    await store.rebuild_all()

    assert [(t.source_file.path, t.task_text, t.completed) for t in store.tasks] == [
        ("Home.md", "Buy milk", False),
        ("Projects/Plan.md", "Draft", True),
    ]
    await store.close()



class _RecordingSink:
    def __init__(self) -> None:
        self.events: list[NoteChange] = []

    async def handle_event(self, event: NoteChange) -> None:
        self.events.append(event)
        if event.path == "Broken.md":
            raise RuntimeError("sink failure")


async def _wait_for(sink: _RecordingSink, count: int) -> list[NoteChange]:
    for _ in range(100):
        if len(sink.events) >= count:
            break
        await asyncio.sleep(0.01)
    return sink.events


@pytest.mark.asyncio
async def test_handler_forwards_note_events(tmp_path: Path) -> None:
    vault = _vault(tmp_path)
    sink = _RecordingSink()
    handler = VaultEventHandler(vault, sink, asyncio.get_running_loop())

    handler.on_modified(FileModifiedEvent(str(vault / "Home.md")))
    handler.on_created(FileCreatedEvent(str(vault / "Projects" / "New.md")))
    handler.on_deleted(FileDeletedEvent(str(vault / "Projects" / "Plan.md")))

    assert await _wait_for(sink, 3) == [
        NoteChange(ChangeKind.MODIFIED, "Home.md"),
        NoteChange(ChangeKind.MODIFIED, "Projects/New.md"),
        NoteChange(ChangeKind.DELETED, "Projects/Plan.md"),
    ]


@pytest.mark.asyncio
async def test_handler_ignores_hidden_and_non_notes(tmp_path: Path) -> None:
    vault = _vault(tmp_path)
    sink = _RecordingSink()
    handler = VaultEventHandler(vault, sink, asyncio.get_running_loop())

    handler.on_modified(FileModifiedEvent(str(vault / ".obsidian" / "workspace.md")))
    handler.on_modified(FileModifiedEvent(str(vault / "image.png")))
    handler.on_modified(FileModifiedEvent(str(vault / ".Home.md.tmp")))
    handler.on_modified(DirModifiedEvent(str(vault / "Projects")))
    handler.on_modified(FileModifiedEvent(str(tmp_path.parent / "elsewhere.md")))
    handler.on_modified(FileModifiedEvent(str(vault / "Home.md")))

    assert await _wait_for(sink, 1) == [NoteChange(ChangeKind.MODIFIED, "Home.md")]
    await asyncio.sleep(0.05)
    assert len(sink.events) == 1


@pytest.mark.asyncio
async def test_handler_maps_moves(tmp_path: Path) -> None:
    vault = _vault(tmp_path)
    sink = _RecordingSink()
    handler = VaultEventHandler(vault, sink, asyncio.get_running_loop())

    # Atomic save: hidden temp file replaced onto the note.
    handler.on_moved(FileMovedEvent(str(vault / ".Home.md.tmp"), str(vault / "Home.md")))
    handler.on_moved(FileMovedEvent(str(vault / "Home.md"), str(vault / "Projects" / "Home.md")))
    handler.on_moved(DirMovedEvent(str(vault / "Projects"), str(vault / "Archive")))
    handler.on_deleted(DirDeletedEvent(str(vault / "Old")))

    assert await _wait_for(sink, 5) == [
        NoteChange(ChangeKind.MODIFIED, "Home.md"),
        NoteChange(ChangeKind.DELETED, "Home.md"),
        NoteChange(ChangeKind.MODIFIED, "Projects/Home.md"),
        NoteChange(ChangeKind.DELETED, "Projects"),
        NoteChange(ChangeKind.DELETED, "Old"),
    ]


@pytest.mark.asyncio
async def test_sink_failure_is_logged(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    vault = _vault(tmp_path)
    sink = _RecordingSink()
    handler = VaultEventHandler(vault, sink, asyncio.get_running_loop())

    with caplog.at_level(logging.ERROR, logger="dynamic_todo.connectors.vault_watcher"):
        handler.on_modified(FileModifiedEvent(str(vault / "Broken.md")))
        handler.on_modified(FileModifiedEvent(str(vault / "Home.md")))
        await _wait_for(sink, 2)
        await asyncio.sleep(0.01)

    assert [e.path for e in sink.events] == ["Broken.md", "Home.md"]
    assert "handle_event failed kind=modified path=Broken.md" in caplog.text


@pytest.mark.asyncio
async def test_folder_deletion_triggers_rebuild(tmp_path: Path) -> None:
    vault = _vault(tmp_path)
    host = FilesystemNoteHost(vault)
    store = TaskStore(host, PluginSettings(), vault_name="Vault", rebuild_debounce_ms=10)
    await store.rebuild_all()
    handler = VaultEventHandler(vault, store, asyncio.get_running_loop())

    (vault / "Projects" / "Plan.md").unlink()
    (vault / "Projects").rmdir()
    handler.on_deleted(DirDeletedEvent(str(vault / "Projects")))
    for _ in range(100):
        if len(store.tasks) == 1:
            break
        await asyncio.sleep(0.01)

    assert [t.source_file.path for t in store.tasks] == ["Home.md"]
    await store.close()


@pytest.mark.asyncio
async def test_observer_starts_and_stops(tmp_path: Path) -> None:
    observer = start_vault_watcher(_vault(tmp_path), _RecordingSink(), asyncio.get_running_loop())
    assert observer.is_alive()

    await asyncio.to_thread(stop_vault_watcher, observer)
    assert not observer.is_alive()
