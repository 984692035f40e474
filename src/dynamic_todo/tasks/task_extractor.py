# src/dynamic_todo/tasks/task_extractor.py

from __future__ import annotations

"""
Task extraction.

Turns one note's text into Task records:
- folder include/exclude filters (checked before the note is read),
- identification policy (tag present / task heading present),
- per-line classification, prefix stripping and completion-date parsing.

process_file() is the I/O-facing entry: it never raises, a failing note is
logged and contributes zero tasks.
"""

import logging
import re
from collections.abc import Callable
from urllib.parse import quote, urlencode

from ..core.ports import NoteHost
from ..errors import ExtractionError
from .line_classifier import is_checked, matched_prefix
from .task_models import (
    COMPLETION_GLYPH,
    FolderFilters,
    IdentificationMethod,
    NoteInfo,
    NoteRef,
    PluginSettings,
    Task,
    now_ms,
)

logger = logging.getLogger(__name__)

HEADER_SCAN_LINES = 20

# "✅ 2024-01-01" at the end of the line.
COMPLETION_RE = re.compile(r"\s*" + COMPLETION_GLYPH + r" (?P<date>\d{4}-\d{2}-\d{2})\s*$")


def _normalize_folder(prefix: str) -> str:
    return prefix.strip().lstrip("/")


def passes_folder_filters(path: str, filters: FolderFilters) -> bool:
    """
    Exclude wins over include. A non-empty include list admits only paths under
    one of its prefixes. Blank entries are ignored.
    """
    exclude = [p for p in (_normalize_folder(x) for x in filters.exclude) if p]
    if any(path.startswith(p) for p in exclude):
        return False

    include = [p for p in (_normalize_folder(x) for x in filters.include) if p]
    if include and not any(path.startswith(p) for p in include):
        return False
    return True


def is_task_note(note_text: str, settings: PluginSettings) -> bool:
    if settings.task_identification_method == IdentificationMethod.HEADER:
        for line in note_text.split("\n")[:HEADER_SCAN_LINES]:
            stripped = line.lstrip()
            if stripped.startswith("#") and "task" in stripped.lower():
                return True
        return False
    return settings.note_tag in note_text


def split_completion(text: str) -> tuple[str, str | None]:
    """Split "Pay rent ✅ 2024-01-01" into ("Pay rent", "2024-01-01")."""
    m = COMPLETION_RE.search(text)
    if not m:
        return text.strip(), None
    return text[: m.start()].strip(), m.group("date")


def build_source_link(vault_name: str, path: str, line_number: int) -> str:
    # Editors count lines from 1.
    query = urlencode({"vault": vault_name, "file": path, "line": line_number + 1}, quote_via=quote)
    return f"obsidian://open?{query}"


def build_task(
    note: NoteRef,
    line: str,
    line_number: int,
    settings: PluginSettings,
    *,
    vault_name: str = "",
    now: int | None = None,
) -> Task | None:
    prefix = matched_prefix(line, settings.task_prefix)
    if prefix is None:
        return None

    raw = line.strip()[len(prefix) :]
    task_text, completion_date = split_completion(raw)
    completed = is_checked(line, settings.task_prefix)

    return Task(
        source_file=note,
        task_text=task_text,
        line_number=line_number,
        completed=completed,
        completion_date=completion_date if completed else None,
        source_link=build_source_link(vault_name, note.path, line_number),
        last_updated=now_ms() if now is None else now,
    )


def extract_tasks(
    note_text: str,
    note: NoteRef,
    settings: PluginSettings,
    *,
    vault_name: str = "",
    clock: Callable[[], int] = now_ms,
) -> list[Task]:
    if not passes_folder_filters(note.path, settings.folder_filters):
        return []
    if not is_task_note(note_text, settings):
        return []

    now = clock()
    tasks: list[Task] = []
    for idx, line in enumerate(note_text.split("\n")):
        task = build_task(note, line, idx, settings, vault_name=vault_name, now=now)
        if task is not None:
            tasks.append(task)
    return tasks


def extract_task_at_line(
    note_text: str,
    note: NoteRef,
    line_number: int,
    settings: PluginSettings,
    *,
    vault_name: str = "",
    clock: Callable[[], int] = now_ms,
) -> list[Task]:
    """Single-line variant: folder filter only, no eligibility check."""
    if not passes_folder_filters(note.path, settings.folder_filters):
        return []
    lines = note_text.split("\n")
    if not 0 <= line_number < len(lines):
        return []
    task = build_task(note, lines[line_number], line_number, settings, vault_name=vault_name, now=clock())
    return [task] if task is not None else []


async def _load_note(host: NoteHost, info: NoteInfo) -> tuple[NoteRef, str]:
    try:
        stat = await host.stat_note(info.path)
        text = await host.read_note_text(info.path)
    except OSError as e:
        raise ExtractionError(info.path, f"read failed: {e}") from e
    if not isinstance(text, str):
        raise ExtractionError(info.path, f"host returned {type(text).__name__}, expected str")
    return NoteRef.from_host(info, stat), text


async def process_file(
    host: NoteHost,
    info: NoteInfo,
    settings: PluginSettings,
    *,
    vault_name: str = "",
    line_number: int | None = None,
    clock: Callable[[], int] = now_ms,
) -> list[Task]:
    """
    Read one note through the host and extract its tasks.

    With line_number set, only that line is classified (the caller already
    knows it is a task line). Folder filters always run, before any I/O.
    """
    if not passes_folder_filters(info.path, settings.folder_filters):
        logger.debug("Skipping %s (folder filter)", info.path)
        return []

    try:
        note, text = await _load_note(host, info)
        if line_number is None:
            tasks = extract_tasks(text, note, settings, vault_name=vault_name, clock=clock)
        else:
            tasks = extract_task_at_line(text, note, line_number, settings, vault_name=vault_name, clock=clock)
    except ExtractionError as e:
        logger.warning("Task extraction failed: %s", e)
        return []
    except Exception:
        logger.exception("Unexpected error extracting tasks from %s", info.path)
        return []

    if tasks:
        logger.debug("Extracted %d task(s) from %s", len(tasks), info.path)
    return tasks
