# src/dynamic_todo/core/debounce.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Coalesce bursts of triggers into few calls of an async function.

    - leading edge: the first trigger of a burst runs immediately,
    - trailing edge: one more run after `wait_seconds` of quiet, only if
      further triggers arrived during the burst.

    If the function returns False (work dropped because something was busy)
    the trailing run is re-armed instead of being lost.
    """

    def __init__(
        self,
        func: Callable[[], Awaitable[bool | None]],
        wait_seconds: float,
        *,
        leading: bool = True,
    ) -> None:
        self._func = func
        self._wait = max(0.0, float(wait_seconds))
        self._leading = leading
        self._timer: asyncio.TimerHandle | None = None
        self._pending_trailing = False
        self._running: set[asyncio.Task[None]] = set()

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        loop = asyncio.get_running_loop()
        call_now = self._leading and self._timer is None
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self._wait, self._on_quiet)

        if call_now:
            self._spawn()
        else:
            self._pending_trailing = True

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending_trailing = False

    async def wait_idle(self) -> None:
        """Wait until no timer is armed and no spawned call is running."""
        while self._timer is not None or self._running:
            if self._running:
                await asyncio.gather(*self._running, return_exceptions=True)
            else:
                await asyncio.sleep(self._wait / 2 or 0.001)

    def _on_quiet(self) -> None:
        self._timer = None
        if self._pending_trailing or not self._leading:
            self._pending_trailing = False
            self._spawn()

    def _spawn(self) -> None:
        task = asyncio.get_running_loop().create_task(self._run())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self) -> None:
        try:
            result = await self._func()
        except Exception:
            logger.exception("Debounced call failed")
            return
        if result is False:
            logger.debug("Debounced call dropped; re-arming")
            self._pending_trailing = True
            if self._timer is None:
                self._timer = asyncio.get_running_loop().call_later(self._wait, self._on_quiet)
