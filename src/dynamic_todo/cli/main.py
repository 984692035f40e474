# src/dynamic_todo/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, runs the initial index, then starts:
- the vault watcher in the background (optional),
- the console REPL (optional; otherwise runs until SIGINT/SIGTERM).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..connectors.vault_watcher import start_vault_watcher, stop_vault_watcher
from ..core.state import AppState
from ..errors import ConfigError
from ..logging_setup import setup_logging
from ..tasks.task_models import Task
from .bootstrap import create_initial_state
from .render import render_task_list

logger = logging.getLogger(__name__)


async def _run(state: AppState) -> None:
    settings = state.settings
    store = state.task_store

    await store.rebuild_all()
    logger.info("Indexed %d task(s).", len(store.tasks))

    def _on_update(tasks: list[Task]) -> None:
        logger.info("Tasks updated (%d).", len(tasks))

    unsubscribe = store.subscribe(_on_update)

    if state.plugin_settings.open_on_startup:
        print(render_task_list(state))

    loop = asyncio.get_running_loop()
    observer = None
    if getattr(settings, "watch_enabled", False):
        observer = start_vault_watcher(state.host.root, store, loop)

    stop_main = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not supported on every platform (e.g. Windows event loops).
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop_main.set)

    try:
        if getattr(settings, "console_enabled", True):
            console = asyncio.create_task(run_console_loop(state))
            stopper = asyncio.create_task(stop_main.wait())
            await asyncio.wait({console, stopper}, return_when=asyncio.FIRST_COMPLETED)
            stopper.cancel()
            if not console.done():
                console.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await console
        else:
            logger.info("Console disabled. Watching the vault only. Press Ctrl+C to stop.")
            await stop_main.wait()
    finally:
        unsubscribe()
        if observer is not None:
            await asyncio.to_thread(stop_vault_watcher, observer)
        await store.close()


def main() -> None:
    try:
        settings = get_settings()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}") from e

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (vault=%s)...", settings.app_name, settings.vault_path)

    try:
        state = create_initial_state(settings=settings)
    except (ConfigError, OSError) as e:
        logger.error("Startup failed: %s", e)
        raise SystemExit(1) from e

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        pass
    logger.info("Bye.")


if __name__ == "__main__":
    main()
