# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from dynamic_todo.core.state import AppState
from dynamic_todo.tasks.task_models import NoteRef, PluginSettings
from dynamic_todo.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeNoteHost


@pytest.fixture()
def plugin_settings() -> PluginSettings:
    return PluginSettings()


@pytest.fixture()
def note() -> NoteRef:
    return NoteRef(path="Projects/Home.md", display_name="Home", created_at=1_000, modified_at=2_000)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def host() -> FakeNoteHost:
    h = FakeNoteHost()
    h.add("Home.md", "#tasks\n- [ ] Buy milk\n- [x] Pay rent ✅ 2024-01-01\n", created_at=3_000)
    h.add("Work.md", "# Tasks\n- [ ] Send report\n", created_at=1_000)
    h.add("Ideas.md", "- [ ] not collected, no tag\n", created_at=2_000)
    return h


@pytest.fixture()
def store(host: FakeNoteHost, plugin_settings: PluginSettings, clock: FakeClock) -> TaskStore:
    return TaskStore(
        host,
        plugin_settings,
        vault_name="Vault",
        self_edit_grace_ms=500,
        rebuild_debounce_ms=20,
        clock=clock,
    )


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal process settings compatible with AppState and the CLI commands.

    A SimpleNamespace rather than the real config keeps tests independent of
    the environment.
    """
    return SimpleNamespace(
        app_name="dynamic-todo-test",
        vault_name="Vault",
        plugin_settings_path=tmp_path / "data.json",
        watch_enabled=False,
        console_enabled=False,
    )


@pytest.fixture()
def state(settings: SimpleNamespace, host: FakeNoteHost, store: TaskStore) -> AppState:
    return AppState(settings=settings, host=host, task_store=store)
