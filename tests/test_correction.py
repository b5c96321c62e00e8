"""Tests for the background spelling correction of the newest block."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from caption_relay.services.correction import CorrectionSupervisor, validate_correction
from caption_relay.services.prompts import CORRECTION_PROMPT
from caption_relay.services.providers import ProviderError
from caption_relay.transcript.models import CaptionObservation
from caption_relay.transcript.store import TranscriptStore

ORIGINAL = "I sea the ship today"
FIXED = "I see the ship today"


@pytest.fixture
def store():
    s = TranscriptStore()
    s.commit(CaptionObservation(speaker="A", text=ORIGINAL))
    return s


@pytest.fixture
def provider():
    return AsyncMock()


def supervisor_for(store, provider, **kwargs):
    kwargs.setdefault("enabled", True)
    kwargs.setdefault("min_chars", 8)
    kwargs.setdefault("max_growth", 2.0)
    return CorrectionSupervisor(store, provider, **kwargs)


def gated(result):
    """complete() side effect that waits until the returned event is set."""
    gate = asyncio.Event()

    async def complete(system, user):
        await gate.wait()
        return result

    return gate, complete


class TestValidateCorrection:
    def test_accepts_fix(self):
        assert validate_correction(ORIGINAL, f"  {FIXED}\n") == FIXED

    @pytest.mark.parametrize("result", [
        None,
        "",
        ORIGINAL,
        "Here is the corrected text: I see the ship",
        "I notice a typo in your text",
        "x" * 41,
    ])
    def test_rejects(self, result):
        assert validate_correction(ORIGINAL, result, max_growth=2.0) is None


class TestCorrectionSupervisor:
    @pytest.mark.asyncio
    async def test_applies_fix_and_pushes(self, store, provider):
        provider.complete.return_value = FIXED
        on_applied = AsyncMock()
        supervisor = supervisor_for(store, provider, on_applied=on_applied)
        task = supervisor.request_latest()
        assert await task is True
        provider.complete.assert_awaited_once_with(CORRECTION_PROMPT, ORIGINAL)
        assert store.last_committed.text == FIXED
        on_applied.assert_awaited_once()
        assert supervisor.applied == 1

    @pytest.mark.asyncio
    async def test_reset_discards_in_flight_result(self, store, provider):
        gate, complete = gated(FIXED)
        provider.complete.side_effect = complete
        supervisor = supervisor_for(store, provider)
        task = supervisor.request_latest()
        supervisor.reset()
        gate.set()
        assert await task is False
        assert store.last_committed.text == ORIGINAL

    @pytest.mark.asyncio
    async def test_newer_request_supersedes_older(self, store, provider):
        gate, complete = gated(FIXED)
        provider.complete.side_effect = complete
        supervisor = supervisor_for(store, provider)
        first = supervisor.request_latest()
        second = supervisor.request_latest()
        assert supervisor.generation == 2
        gate.set()
        assert await first is False
        assert await second is True
        assert supervisor.applied == 1

    @pytest.mark.asyncio
    async def test_changed_block_is_not_overwritten(self, store, provider):
        gate, complete = gated(FIXED)
        provider.complete.side_effect = complete
        supervisor = supervisor_for(store, provider)
        task = supervisor.request_latest()
        store.commit(CaptionObservation(speaker="A", text=ORIGINAL + " and tomorrow"))
        gate.set()
        assert await task is False
        assert store.last_committed.text == ORIGINAL + " and tomorrow"

    @pytest.mark.asyncio
    async def test_cleared_transcript_is_not_touched(self, store, provider):
        gate, complete = gated(FIXED)
        provider.complete.side_effect = complete
        supervisor = supervisor_for(store, provider)
        task = supervisor.request_latest()
        store.clear()
        gate.set()
        assert await task is False
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_provider_error_keeps_original(self, store, provider):
        provider.complete.side_effect = ProviderError("rate limited", 429)
        supervisor = supervisor_for(store, provider)
        assert await supervisor.request_latest() is False
        assert store.last_committed.text == ORIGINAL

    @pytest.mark.asyncio
    async def test_chatty_reply_is_discarded(self, store, provider):
        provider.complete.return_value = "I'd be happy to help with that sentence"
        supervisor = supervisor_for(store, provider)
        assert await supervisor.request_latest() is False
        assert store.last_committed.text == ORIGINAL

    @pytest.mark.asyncio
    async def test_nothing_to_request(self, provider):
        empty = TranscriptStore()
        assert supervisor_for(empty, provider).request_latest() is None
        short = TranscriptStore()
        short.commit(CaptionObservation(speaker="A", text="Ok sure"))
        assert supervisor_for(short, provider).request_latest() is None
        assert supervisor_for(short, None).request_latest() is None
        provider.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled(self, store, provider):
        supervisor = supervisor_for(store, provider, enabled=False)
        assert supervisor.request_latest() is None
        assert supervisor.generation == 0

    @pytest.mark.asyncio
    async def test_drain_waits_for_in_flight(self, store, provider):
        provider.complete.return_value = FIXED
        supervisor = supervisor_for(store, provider)
        supervisor.request_latest()
        await supervisor.drain()
        assert store.last_committed.text == FIXED
