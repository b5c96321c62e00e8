"""
CorrectionSupervisor: background spelling/grammar fix of the newest committed block.

Each request bumps a generation counter and remembers the block and its text.
The result is applied only if, when it arrives:
- no newer request or session reset happened (generation unchanged)
- the block is still in the transcript with exactly the text that was sent
- the result looks like a correction (not a chatty reply, not much longer, not empty)
Otherwise it is dropped and the original text stays.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from caption_relay.config import get_settings
from caption_relay.services.prompts import CORRECTION_PROMPT, NON_ANSWER_PHRASES
from caption_relay.services.providers import AIProvider
from caption_relay.transcript.models import CommittedBlock
from caption_relay.transcript.store import TranscriptStore

logger = logging.getLogger(__name__)


def validate_correction(original: str, result: Optional[str], max_growth: float = 2.0) -> Optional[str]:
    """Return the usable corrected text, or None when the result must be discarded."""
    corrected = (result or "").strip()
    if not corrected or corrected == original:
        return None
    lower = corrected.lower()
    if any(p in lower for p in NON_ANSWER_PHRASES):
        return None
    if len(corrected) > len(original) * max_growth:
        return None
    return corrected


class CorrectionSupervisor:
    def __init__(
        self,
        store: TranscriptStore,
        provider: Optional[AIProvider],
        on_applied: Optional[Callable[[], Awaitable[object]]] = None,
        enabled: Optional[bool] = None,
        min_chars: Optional[int] = None,
        max_growth: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self.provider = provider
        self._on_applied = on_applied
        self.enabled = enabled if enabled is not None else settings.SPELLING_CORRECTION_ENABLED
        self._min_chars = min_chars if min_chars is not None else settings.CORRECTION_MIN_CHARS
        self._max_growth = max_growth if max_growth is not None else settings.CORRECTION_MAX_GROWTH
        self.generation = 0
        self._tasks: set[asyncio.Task] = set()
        self.applied = 0

    def advance_generation(self) -> int:
        """Invalidate every in-flight correction (newer request or session reset)."""
        self.generation += 1
        return self.generation

    def request_latest(self) -> Optional[asyncio.Task]:
        """Start correcting the last committed block. None when there is nothing to do."""
        if not self.enabled or self.provider is None:
            return None
        block = self._store.last_committed
        if block is None or len(block.text.strip()) < self._min_chars:
            return None
        generation = self.advance_generation()
        task = asyncio.create_task(self._run(generation, block, block.text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, generation: int, block: CommittedBlock, original: str) -> bool:
        try:
            result = await self.provider.complete(CORRECTION_PROMPT, original)
        except Exception as e:
            logger.warning("Spelling correction failed, keeping original: %s", e)
            return False
        corrected = validate_correction(original, result, self._max_growth)
        if corrected is None:
            logger.debug("Correction discarded for %r", original[:60])
            return False
        if generation != self.generation:
            logger.debug("Correction discarded: superseded (gen %d != %d)", generation, self.generation)
            return False
        if not self._store.apply_correction(block, original, corrected):
            logger.debug("Correction discarded: block changed or removed")
            return False
        self.applied += 1
        logger.info("Corrected block: %r -> %r", original[:60], corrected[:60])
        if self._on_applied is not None:
            try:
                await self._on_applied()
            except Exception as e:
                logger.warning("Push after correction failed: %s", e)
        return True

    async def drain(self) -> None:
        """Wait for in-flight corrections (tests, shutdown)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def reset(self) -> None:
        self.advance_generation()
