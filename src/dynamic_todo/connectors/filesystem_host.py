# src/dynamic_todo/connectors/filesystem_host.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from pathlib import Path

from ..tasks.task_models import NoteInfo, NoteStat

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"


class FilesystemNoteHost:
    """
    NoteHost over a directory of markdown notes ("vault").

    Paths are vault-relative POSIX strings ("Projects/Home.md").
    File I/O runs in worker threads so the event loop is never blocked.
    Hidden directories (".obsidian", ".git", ...) are skipped.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()
        if not self._root.is_dir():
            raise NotADirectoryError(str(self._root))
        logger.info("Vault ready root=%s", self._root)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        full = (self._root / path).resolve()
        if not full.is_relative_to(self._root):
            raise PermissionError(f"path escapes vault: {path}")
        return full

    def enumerate_notes(self) -> list[NoteInfo]:
        notes: list[NoteInfo] = []
        for p in sorted(self._root.rglob(f"*{NOTE_SUFFIX}")):
            rel = p.relative_to(self._root)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if p.is_file():
                notes.append(NoteInfo(path=rel.as_posix(), display_name=p.stem))
        return notes

    async def read_note_text(self, path: str) -> str:
        full = self._resolve(path)
        return await asyncio.to_thread(full.read_text, "utf-8")

    async def write_note_text(self, path: str, text: str) -> None:
        full = self._resolve(path)
        await asyncio.to_thread(_atomic_write, full, text)

    async def stat_note(self, path: str) -> NoteStat:
        full = self._resolve(path)
        st = await asyncio.to_thread(full.stat)
        # st_birthtime only exists on some platforms.
        created = getattr(st, "st_birthtime", None) or st.st_ctime
        return NoteStat(created_at=int(created * 1000), modified_at=int(st.st_mtime * 1000))


def _atomic_write(path: Path, text: str) -> None:
    """Write to a sibling temp file, then replace, so readers never see a partial note."""
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        # newline="" keeps "\n" as written; the engine joins lines with "\n".
        with tmp.open("w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        os.replace(tmp, path)
    finally:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
