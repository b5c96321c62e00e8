"""
Translation sink: receives the rolling transcript window by full replacement.

The sink never sees deltas. Every push is the complete list of the last N blocks,
so a lost or reordered message is repaired by the next one.
"""
from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class SinkUnavailableError(Exception):
    """No translation sink is connected."""


class TranslationSink(ABC):
    @abstractmethod
    async def replace(self, blocks: list[dict[str, str]]) -> None:
        """Replace the sink's whole buffer with blocks ([{speaker, text}, ...])."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...


def render_blocks(blocks: list[dict[str, str]]) -> str:
    """Plain-text form of a window: 'speaker: text' blocks separated by blank lines."""
    parts = []
    for b in blocks:
        speaker = (b.get("speaker") or "").strip()
        text = (b.get("text") or "").strip()
        if not text:
            continue
        parts.append(f"{speaker}: {text}" if speaker else text)
    return "\n\n".join(parts)


class WebSocketSink(TranslationSink):
    """Pushes {"type": "setBlocks"} / {"type": "clear"} JSON messages to one subscriber."""

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket

    async def replace(self, blocks: list[dict[str, str]]) -> None:
        await self._ws.send_text(
            json.dumps({"type": "setBlocks", "blocks": blocks, "text": render_blocks(blocks)}, ensure_ascii=False)
        )

    async def clear(self) -> None:
        await self._ws.send_text(json.dumps({"type": "clear"}))


class SinkRouter(TranslationSink):
    """Fans pushes out to every connected sink. Raises SinkUnavailableError when none is connected."""

    def __init__(self) -> None:
        self._sinks: dict[str, TranslationSink] = {}
        self._last_blocks: list[dict[str, str]] | None = None

    @property
    def handles(self) -> list[str]:
        return list(self._sinks)

    def attach(self, sink: TranslationSink, handle: str | None = None) -> str:
        handle = handle or f"sink-{uuid.uuid4().hex[:8]}"
        self._sinks[handle] = sink
        logger.info("Translation sink attached: %s", handle)
        return handle

    def detach(self, handle: str) -> None:
        if self._sinks.pop(handle, None) is not None:
            logger.info("Translation sink detached: %s", handle)

    async def _each(self, op: str, *args) -> None:
        if not self._sinks:
            raise SinkUnavailableError("no translation sink connected")
        dead: list[str] = []
        for handle, sink in list(self._sinks.items()):
            try:
                await getattr(sink, op)(*args)
            except Exception as e:
                logger.info("Sink %s %s failed, detaching: %s", handle, op, e)
                dead.append(handle)
        for handle in dead:
            self.detach(handle)
        if dead and not self._sinks:
            raise SinkUnavailableError("all translation sinks failed")

    async def replace(self, blocks: list[dict[str, str]]) -> None:
        self._last_blocks = list(blocks)
        await self._each("replace", blocks)

    async def clear(self) -> None:
        self._last_blocks = None
        await self._each("clear")

    async def resend(self, handle: str) -> None:
        """Bring a newly attached sink up to date with the last window."""
        sink = self._sinks.get(handle)
        if sink is None or self._last_blocks is None:
            return
        await sink.replace(self._last_blocks)
