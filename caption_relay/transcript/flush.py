"""
FlushScheduler: debounced full-replacement pushes of the transcript window.

One dirty flag, one timer. Each change re-arms the timer, so a burst of caption
updates produces one push. The first push after activate/clear uses a shorter
delay so the sink shows something quickly.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from caption_relay.config import get_settings
from caption_relay.scheduler import DebounceTimer
from caption_relay.sink import SinkUnavailableError, TranslationSink
from caption_relay.transcript.store import TranscriptStore

logger = logging.getLogger(__name__)


class FlushScheduler:
    def __init__(
        self,
        store: TranscriptStore,
        sink: TranslationSink,
        on_flushed: Optional[Callable[[], None]] = None,
        first_delay: Optional[float] = None,
        delay: Optional[float] = None,
        window: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._sink = sink
        self._on_flushed = on_flushed
        self._first_delay = first_delay if first_delay is not None else settings.FLUSH_FIRST_DEBOUNCE_SEC
        self._delay = delay if delay is not None else settings.FLUSH_DEBOUNCE_SEC
        self._window = window if window is not None else settings.SINK_WINDOW_BLOCKS
        self._timer = DebounceTimer(self.flush, name="flush")
        self._dirty = False
        self._flushed_once = False
        self.pushes = 0

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def timer(self) -> DebounceTimer:
        return self._timer

    def mark_dirty(self) -> None:
        """Record a transcript change and (re)arm the flush timer."""
        self._dirty = True
        self._timer.reset(self._delay if self._flushed_once else self._first_delay)

    def window(self) -> list[dict[str, str]]:
        return self._store.tail(self._window)

    async def push_now(self) -> bool:
        """Push the current window regardless of the dirty flag. False when no sink took it."""
        try:
            await self._sink.replace(self.window())
        except SinkUnavailableError as e:
            logger.debug("Flush skipped: %s", e)
            return False
        except Exception as e:
            logger.warning("Flush to sink failed: %s", e)
            return False
        self.pushes += 1
        return True

    async def flush(self) -> None:
        """Timer callback: push when dirty, then notify (correction request)."""
        if not self._dirty:
            return
        self._dirty = False
        self._flushed_once = True
        await self.push_now()
        if self._on_flushed is not None:
            self._on_flushed()

    def cancel(self) -> None:
        self._timer.cancel()

    def reset(self) -> None:
        """Back to the post-activate state: clean, timer idle, next flush uses the short delay."""
        self._timer.cancel()
        self._dirty = False
        self._flushed_once = False
