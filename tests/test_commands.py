# tests/test_commands.py

from __future__ import annotations

import json

import pytest

from dynamic_todo.cli.commands import CommandRegistry, registry
from dynamic_todo.core.state import AppState
from dynamic_todo.tasks.task_models import IdentificationMethod

from .fakes import FakeNoteHost


@pytest.mark.asyncio
async def test_command_registry_routes_sync_and_async_handlers(state: AppState) -> None:
    reg = CommandRegistry()
    called = {"sync": 0, "async": 0}

    def h_sync(state, args, emit):
        called["sync"] += 1
        return "sync:" + ",".join(args)

    async def h_async(state, args, emit):
        called["async"] += 1
        if emit is not None:
            emit("note")
        return "async"

    reg.register("a", h_sync, "a", aliases=["alpha"])
    reg.register("b", h_async, "b")

    notes: list[str] = []
    assert await reg.handle(state, "/a x y") == "sync:x,y"
    assert await reg.handle(state, "/ALPHA") == "sync:"
    assert await reg.handle(state, "/b", emit=notes.append) == "async"
    assert called == {"sync": 2, "async": 1}
    assert notes == ["note"]
    assert "/alpha" not in reg.build_help()


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_list_and_toggle_by_number(state: AppState, host: FakeNoteHost) -> None:
    await state.task_store.rebuild_all()
    await registry.handle(state, "/archive 0")

    listing = await registry.handle(state, "/list")
    assert "Home (Home.md)" in listing
    assert "1. [ ] Buy milk" in listing
    assert "Completed Tasks (1)" in listing
    assert "2. [x] Pay rent (done 2024-01-01)" in listing

    reply = await registry.handle(state, "/toggle 1")
    assert reply == "Task completed: Buy milk"
    assert host.notes["Home.md"].startswith("#tasks\n- [x] Buy milk ✅ ")

    reply = await registry.handle(state, "/done 2")
    assert reply == "Task reopened: Pay rent"
    assert "- [ ] Pay rent\n" in host.notes["Home.md"]


@pytest.mark.asyncio
async def test_toggle_validates_number(state: AppState) -> None:
    await state.task_store.rebuild_all()
    assert (await registry.handle(state, "/toggle")).startswith("Usage:")
    assert (await registry.handle(state, "/toggle x")).startswith("Usage:")
    assert await registry.handle(state, "/toggle 7") == "No task #7. Use /list first."


@pytest.mark.asyncio
async def test_toggle_write_failure_is_reported(state: AppState, host: FakeNoteHost) -> None:
    await state.task_store.rebuild_all()
    await registry.handle(state, "/list")
    host.fail_writes.add("Home.md")

    reply = await registry.handle(state, "/toggle 1")

    assert reply.startswith("Failed to update task:")
    buy = state.task_store.tasks[0]
    assert buy.task_text == "Buy milk"
    assert buy.completed is False
    assert host.writes == []


@pytest.mark.asyncio
async def test_search_and_hide(state: AppState) -> None:
    await state.task_store.rebuild_all()
    await registry.handle(state, "/archive 0")

    out = await registry.handle(state, "/search rent")
    assert "Pay rent" in out and "Buy milk" not in out

    out = await registry.handle(state, "/s nothing-matches")
    assert out == "No tasks match the current filters."

    await registry.handle(state, "/search")
    out = await registry.handle(state, "/hide")
    assert "Buy milk" in out and "Pay rent" not in out


@pytest.mark.asyncio
async def test_empty_vault_message(state: AppState) -> None:
    assert await registry.handle(state, "/list") == (
        "No tasks found. Tag a note with #tasks to include its tasks here."
    )


@pytest.mark.asyncio
async def test_settings_commands_rebuild_and_persist(state: AppState) -> None:
    await state.task_store.rebuild_all()

    reply = await registry.handle(state, "/method header")
    assert reply == "Identification method set to header."
    assert state.plugin_settings.task_identification_method == IdentificationMethod.HEADER
    assert "Send report" in [t.task_text for t in state.task_store.tasks]

    saved = json.loads(state.settings.plugin_settings_path.read_text("utf-8"))
    assert saved["taskIdentificationMethod"] == "header"

    await registry.handle(state, "/exclude add Work.md")
    assert "Send report" not in [t.task_text for t in state.task_store.tasks]
    assert state.plugin_settings.folder_filters.exclude == ("Work.md",)

    reply = await registry.handle(state, "/exclude remove Nope")
    assert reply == "Nope is not in the exclude list."


@pytest.mark.asyncio
async def test_prefix_requires_checkbox(state: AppState) -> None:
    reply = await registry.handle(state, "/prefix TODO:")
    assert reply.startswith("Task prefix: '- [ ]'.")
    assert state.plugin_settings.task_prefix == "- [ ]"

    reply = await registry.handle(state, "/prefix * [ ]")
    assert reply == "Task prefix set to '* [ ]'."
    assert state.plugin_settings.task_prefix == "* [ ]"


@pytest.mark.asyncio
async def test_flat_view_and_sort(state: AppState) -> None:
    await state.task_store.rebuild_all()
    await registry.handle(state, "/archive 0")

    out = await registry.handle(state, "/flat")
    assert state.plugin_settings.show_file_headers is False
    assert "1. [ ] Buy milk  · Home" in out

    out = await registry.handle(state, "/sort name desc")
    assert str(state.plugin_settings.sort_preference) == "name-desc"
    assert out.index("Pay rent") < out.index("Buy milk")


@pytest.mark.asyncio
async def test_rebuild_and_status(state: AppState) -> None:
    assert await registry.handle(state, "/rebuild") == "Tasks updated (2 task(s))."
    status = await registry.handle(state, "/status")
    assert "Vault: Vault" in status
    assert "Tasks: 2 (1 completed)" in status
