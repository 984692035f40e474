# src/dynamic_todo/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Console thresholds by logger prefix; the longest matching prefix wins.
CONSOLE_LEVELS: dict[str, int] = {
    "dynamic_todo": logging.NOTSET,
    # Every save in the vault produces watcher events.
    "dynamic_todo.connectors.vault_watcher": logging.WARNING,
}
THIRD_PARTY_CONSOLE_LEVEL = logging.ERROR


def console_threshold(name: str) -> int:
    best = ""
    for prefix in CONSOLE_LEVELS:
        if (name == prefix or name.startswith(prefix + ".")) and len(prefix) > len(best):
            best = prefix
    return CONSOLE_LEVELS[best] if best else THIRD_PARTY_CONSOLE_LEVEL


class _ConsoleNoiseFilter(logging.Filter):
    """Drops console records below the threshold of their logger (see CONSOLE_LEVELS)."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= console_threshold(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/dynamic_todo",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console handler on stderr (filtered per logger), file handler with
    everything at `file_level`. Replaces any handlers already on the root
    logger. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "dynamic_todo.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    # watchdog logs every inotify event at DEBUG.
    logging.getLogger("watchdog").setLevel(logging.INFO)
    logging.captureWarnings(True)
    return log_file
