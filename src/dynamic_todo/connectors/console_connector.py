# src/dynamic_todo/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

_EOF = None


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[str | None]) -> threading.Thread:
    """Read stdin lines in a daemon thread and hand them to the event loop. A pending input() must not block shutdown."""

    def _reader() -> None:
        while True:
            try:
                line = input(">>> ")
            except (EOFError, KeyboardInterrupt):
                loop.call_soon_threadsafe(queue.put_nowait, _EOF)
                return
            except Exception:
                logger.exception("stdin reader crashed")
                loop.call_soon_threadsafe(queue.put_nowait, _EOF)
                return
            loop.call_soon_threadsafe(queue.put_nowait, line)

    t = threading.Thread(target=_reader, name="console-stdin", daemon=True)
    t.start()
    return t


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /list to show tasks, /help for commands, /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    queue: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), queue)

    while True:
        raw = await queue.get()
        if raw is _EOF:
            logger.info("Console EOF received, exiting.")
            break

        user_input = raw.strip()
        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        # Bare text is a search.
        if not user_input.startswith("/"):
            user_input = "/search " + user_input

        try:
            response = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response:
            print(response)

    logger.info("Console connector finished.")
