# src/dynamic_todo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the filesystem host and TaskStore into AppState,
- persists plugin settings as JSON.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

from ..config import get_settings
from ..connectors.filesystem_host import FilesystemNoteHost
from ..core.state import AppState
from ..errors import ConfigError
from ..tasks.task_models import PluginSettings
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.plugin_settings_path.parent.mkdir(parents=True, exist_ok=True)


def load_plugin_settings(path: str | Path) -> PluginSettings:
    """Defaults merged with whatever the JSON file holds. A missing file means defaults."""
    path = Path(path)
    if not path.exists():
        return PluginSettings()
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read plugin settings from {path}: {e}") from e
    settings = PluginSettings.from_dict(data)
    logger.info("Loaded plugin settings from %s", path)
    return settings


def save_plugin_settings(settings: PluginSettings, path: str | Path) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(settings.to_dict(), ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, path)
        logger.info("Saved plugin settings to %s", path)
    except OSError:
        logger.exception("Failed to save plugin settings to %s", path)
        with contextlib.suppress(OSError):
            path.with_suffix(".tmp").unlink()
        raise


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    host = FilesystemNoteHost(settings.vault_path)
    plugin_settings = load_plugin_settings(settings.plugin_settings_path)
    store = TaskStore(
        host,
        plugin_settings,
        vault_name=settings.vault_name,
        self_edit_grace_ms=settings.self_edit_grace_ms,
        rebuild_debounce_ms=settings.rebuild_debounce_ms,
    )
    return AppState(settings=settings, host=host, task_store=store)
