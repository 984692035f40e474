# src/dynamic_todo/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..core.state import AppState
from ..errors import ToggleError
from ..tasks.task_api import rebuild_all, toggle, update_plugin_settings
from ..tasks.task_models import FolderFilters, IdentificationMethod, SortPreference, UNCHECKED_BOX
from .bootstrap import save_plugin_settings
from .render import render_task_list

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], str | Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /toggle, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        result = handler(state, args, emit)
        if inspect.isawaitable(result):
            result = await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


async def _save_settings(state: AppState, **changes: Any) -> None:
    """Apply a settings change (new snapshot + rebuild) and persist it."""
    new_settings = await update_plugin_settings(state, **changes)
    path = getattr(state.settings, "plugin_settings_path", None)
    if path is not None:
        save_plugin_settings(new_settings, path)


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return render_task_list(state)


async def cmd_toggle(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1 or not args[0].isdigit():
        return "Usage: /toggle N (number from /list)"

    visible = state.view.visible
    n = int(args[0])
    if not 1 <= n <= len(visible):
        return f"No task #{n}. Use /list first."

    task = visible[n - 1]
    try:
        await toggle(state, task, not task.completed)
    except ToggleError as e:
        logger.warning("Toggle failed: %s", e)
        return f"Failed to update task: {e}"

    state_word = "completed" if task.completed else "reopened"
    return f"Task {state_word}: {task.task_text}"


def cmd_search(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    state.view.search_query = " ".join(args)
    return render_task_list(state)


def cmd_hide(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    state.view.hide_completed = not state.view.hide_completed
    return render_task_list(state)


async def cmd_flat(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    await _save_settings(state, show_file_headers=not state.plugin_settings.show_file_headers)
    return render_task_list(state)


async def cmd_sort(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return f"Sort: {state.plugin_settings.sort_preference}. Usage: /sort name|created|lastModified [asc|desc]"
    sort = SortPreference.parse("-".join(args[:2]))
    await _save_settings(state, sort_preference=sort)
    return render_task_list(state)


async def cmd_archive(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1 or not args[0].isdigit():
        return (
            f"Archive threshold: {state.plugin_settings.archive_completed_older_than} day(s). "
            "Usage: /archive DAYS (0 disables)"
        )
    await _save_settings(state, archive_completed_older_than=int(args[0]))
    return render_task_list(state)


async def cmd_tag(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return f"Note tag: {state.plugin_settings.note_tag}. Usage: /tag #tag"
    await _save_settings(state, note_tag=args[0])
    return f"Note tag set to {args[0]}."


async def cmd_prefix(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    prefix = " ".join(args)
    if UNCHECKED_BOX not in prefix:
        return f"Task prefix: {state.plugin_settings.task_prefix!r}. Usage: /prefix - [ ]  (must contain {UNCHECKED_BOX})"
    await _save_settings(state, task_prefix=prefix)
    return f"Task prefix set to {prefix!r}."


async def cmd_method(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    choices = [m.value for m in IdentificationMethod]
    if len(args) != 1 or args[0].lower() not in choices:
        current = state.plugin_settings.task_identification_method.value
        return f"Identification method: {current}. Usage: /method {'|'.join(choices)}"
    await _save_settings(state, task_identification_method=IdentificationMethod(args[0].lower()))
    return f"Identification method set to {args[0].lower()}."


def _folder_command(kind: str) -> CommandHandler:
    async def _handler(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
        filters = state.plugin_settings.folder_filters
        current = list(getattr(filters, kind))
        if len(args) < 2 or args[0] not in ("add", "remove"):
            shown = ", ".join(current) or "(none)"
            return f"{kind.capitalize()} folders: {shown}. Usage: /{kind} add|remove PATH"

        folder = " ".join(args[1:])
        if args[0] == "add":
            if folder not in current:
                current.append(folder)
        elif folder in current:
            current.remove(folder)
        else:
            return f"{folder} is not in the {kind} list."

        if kind == "include":
            new_filters = FolderFilters(include=tuple(current), exclude=filters.exclude)
        else:
            new_filters = FolderFilters(include=filters.include, exclude=tuple(current))
        await _save_settings(state, folder_filters=new_filters)
        return f"{kind.capitalize()} folders: {', '.join(current) or '(none)'}"

    return _handler


async def cmd_rebuild(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not await rebuild_all(state):
        return "A rebuild is already running; try again in a moment."
    return f"Tasks updated ({len(state.task_store.tasks)} task(s))."


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    ps = state.plugin_settings
    tasks = state.task_store.tasks
    done = sum(1 for t in tasks if t.completed)
    return (
        "Status:\n"
        f"  Vault: {state.task_store.vault_name or '(unnamed)'}\n"
        f"  Tasks: {len(tasks)} ({done} completed)\n"
        f"  Method: {ps.task_identification_method.value}  Tag: {ps.note_tag}  Prefix: {ps.task_prefix!r}\n"
        f"  Sort: {ps.sort_preference}  Archive after: {ps.archive_completed_older_than} day(s)\n"
        f"  View: {'grouped' if ps.show_file_headers else 'flat'}"
        f"  Hide completed: {'ON' if state.view.hide_completed else 'OFF'}"
        f"  Search: {state.view.search_query or '-'}"
    )


registry.register("help", cmd_help, "Show this help.")
registry.register("list", cmd_list, "Show the task list.", aliases=["ls"])
registry.register("toggle", cmd_toggle, "Toggle task N from the last list.", aliases=["t", "done"])
registry.register("search", cmd_search, "Filter by text or note path (no argument clears).", aliases=["s"])
registry.register("hide", cmd_hide, "Toggle hiding of completed tasks.")
registry.register("flat", cmd_flat, "Toggle between grouped-by-note and flat list.")
registry.register("sort", cmd_sort, "Sort by name|created|lastModified, asc|desc.")
registry.register("archive", cmd_archive, "Hide completed tasks older than N days (0 disables).")
registry.register("tag", cmd_tag, "Set the note tag used by the tag method.")
registry.register("prefix", cmd_prefix, "Set the task prefix (must contain [ ]).")
registry.register("method", cmd_method, "Identify task notes by tag or by header.")
registry.register("include", _folder_command("include"), "Add/remove an include folder.")
registry.register("exclude", _folder_command("exclude"), "Add/remove an exclude folder.")
registry.register("rebuild", cmd_rebuild, "Re-scan all notes.")
registry.register("status", cmd_status, "Show engine status.")
