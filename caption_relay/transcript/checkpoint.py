"""
CheckpointWriter: periodic persistence of session metadata + transcript tail.

Each checkpoint replaces the previous one (write to a temp file, then os.replace),
so a crash mid-write leaves the last good checkpoint on disk. A worker task
drains the queue so the capture loop never blocks on file I/O.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Optional

from caption_relay.config import get_settings

logger = logging.getLogger(__name__)

STATE_FILENAME = "session.json"


def write_json_atomic(path: str, payload: dict[str, Any]) -> None:
    """Write payload to path via a temp file in the same directory. Raises OSError."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    tmp_path = path + ".tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False)
    os.replace(tmp_path, path)


class CheckpointWriterBase(ABC):
    """Base for checkpoint writer. enqueue() never blocks."""

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    def enqueue(self, payload: dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        """Write any queued checkpoint and stop the worker. Safe to call twice."""
        ...


class NoOpCheckpointWriter(CheckpointWriterBase):
    """When state saving is disabled. No file I/O."""

    async def start(self) -> None:
        pass

    def enqueue(self, payload: dict[str, Any]) -> None:
        pass

    async def close(self) -> None:
        pass


class CheckpointWriter(CheckpointWriterBase):
    """One file per process: {state_dir}/session.json."""

    def __init__(self, state_dir: Optional[str] = None) -> None:
        settings = get_settings()
        self._state_dir = state_dir or settings.STATE_DIR
        self._path = os.path.join(self._state_dir, STATE_FILENAME)
        self._queue: asyncio.Queue[Optional[dict[str, Any]]] = asyncio.Queue()
        self._worker_task: Optional[asyncio.Task] = None
        self._started = False
        self.writes = 0

    @property
    def path(self) -> str:
        return self._path

    async def _worker(self) -> None:
        """Drain queue; None = stop. Only the newest queued payload is written. Log errors, never crash."""
        while True:
            payload = await self._queue.get()
            if payload is None:
                break
            stop = False
            while not self._queue.empty():
                newer = self._queue.get_nowait()
                if newer is None:
                    stop = True
                    break
                payload = newer
            try:
                write_json_atomic(self._path, payload)
                self.writes += 1
            except (OSError, TypeError, ValueError) as e:
                logger.warning("Checkpoint write failed for %s: %s", self._path, e)
            if stop:
                break

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._worker_task = asyncio.create_task(self._worker())

    def enqueue(self, payload: dict[str, Any]) -> None:
        if not self._started:
            return
        self._queue.put_nowait(payload)

    async def close(self) -> None:
        if not self._started or self._worker_task is None:
            return
        try:
            self._queue.put_nowait(None)
            await asyncio.wait_for(self._worker_task, timeout=5.0)
        except asyncio.TimeoutError:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        self._worker_task = None
        self._started = False


def create_checkpoint_writer(state_dir: Optional[str] = None) -> CheckpointWriterBase:
    """Create writer when STATE_SAVE_ENABLED is true; else no-op."""
    settings = get_settings()
    if not settings.STATE_SAVE_ENABLED:
        return NoOpCheckpointWriter()
    return CheckpointWriter(state_dir=state_dir)
