"""
Timers for the capture loop.

- DebounceTimer: one pending callback; reset() replaces it, cancel() drops it.
- PeriodicTask: run a sync callback at a fixed interval until stopped.

Both run on the current event loop. Callbacks run to completion before the next
one starts, so state transitions driven by them never overlap.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[None, Awaitable[Any]]]


class DebounceTimer:
    """Single-slot timer. The callback may be sync or async."""

    def __init__(self, callback: Callback, name: str = "debounce") -> None:
        self._callback = callback
        self._name = name
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def reset(self, delay: float) -> None:
        """(Re)arm the timer: any pending fire is replaced."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        try:
            result = self._callback()
        except Exception as e:
            logger.warning("%s callback failed: %s", self._name, e)
            return
        if inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result)
            self._task.add_done_callback(self._log_failure)

    def _log_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("%s callback failed: %s", self._name, exc)

    async def wait(self) -> None:
        """Wait for the last fired async callback to finish (tests, shutdown)."""
        if self._task is not None and not self._task.done():
            await self._task


class PeriodicTask:
    """Runs callback every interval seconds. Exceptions are logged; the loop keeps going."""

    def __init__(self, callback: Callable[[], None], interval: float, name: str = "periodic") -> None:
        self._callback = callback
        self._interval = interval
        self._name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._callback()
            except Exception as e:
                logger.warning("%s tick failed: %s", self._name, e)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
