"""
CaptureEngine: one capture session from caption snapshots to transcript, sink and assist.

Data flow:
  page snapshot -> PageObservationSource (discovery + extraction) -> observations
  caption batch -----------------------------------------------> observations
  observations -> DiffCommitEngine -> TranscriptStore -> FlushScheduler -> sink
                                                       -> CorrectionSupervisor (after each flush)
  AssistQueryEngine reads the TranscriptStore on demand.

All state lives on this object. activate/deactivate/clear reset it; periodic
tasks only run while the session is active.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from caption_relay.capture.dom import PageTree
from caption_relay.capture.filters import SpeakerRegistry, clean_text
from caption_relay.capture.source import PageObservationSource
from caption_relay.config import get_settings
from caption_relay.scheduler import PeriodicTask
from caption_relay.services.assist import AssistQueryEngine
from caption_relay.services.correction import CorrectionSupervisor
from caption_relay.services.documents import DocumentLibrary
from caption_relay.services.providers import AIProvider
from caption_relay.session_store import HandleRegistry, SessionMetadata, build_state, load_state
from caption_relay.sink import SinkRouter, SinkUnavailableError, TranslationSink
from caption_relay.transcript.checkpoint import CheckpointWriterBase, create_checkpoint_writer
from caption_relay.transcript.diff import DiffCommitEngine, DiffResult
from caption_relay.transcript.flush import FlushScheduler
from caption_relay.transcript.models import CaptionObservation
from caption_relay.transcript.store import TranscriptStore

logger = logging.getLogger(__name__)


class CaptureEngine:
    def __init__(
        self,
        sink: Optional[TranslationSink] = None,
        provider: Optional[AIProvider] = None,
        documents: Optional[DocumentLibrary] = None,
        handles: Optional[HandleRegistry] = None,
        checkpoint_writer: Optional[CheckpointWriterBase] = None,
        periodic: bool = True,
    ) -> None:
        settings = get_settings()
        self.sink = sink if sink is not None else SinkRouter()
        self.handles = handles or HandleRegistry()
        self.checkpoints = checkpoint_writer or create_checkpoint_writer()
        self.metadata = SessionMetadata(
            source_lang=settings.SOURCE_LANG,
            target_lang=settings.TARGET_LANG,
            spelling_correction=settings.SPELLING_CORRECTION_ENABLED,
        )
        self._checkpoint_every = settings.CHECKPOINT_EVERY_COMMITS
        self._periodic = periodic

        self.store = TranscriptStore()
        self.diff = DiffCommitEngine(self.store)
        self.speakers = SpeakerRegistry()
        self.source = PageObservationSource(self.speakers)
        self.correction = CorrectionSupervisor(self.store, provider, on_applied=self._push_after_correction)
        self.flush = FlushScheduler(self.store, self.sink, on_flushed=self._request_correction)
        self.assist = AssistQueryEngine(self.store, documents, provider, on_clear=self.clear)
        self._commits_since_checkpoint = 0
        self._tasks = [
            PeriodicTask(self._run_probe, settings.DISCOVERY_PROBE_INTERVAL_SEC, name="descriptor probe"),
            PeriodicTask(self._run_mutation_eval, settings.MUTATION_EVAL_INTERVAL_SEC, name="mutation scoring"),
            PeriodicTask(self._run_text_scan, settings.TEXT_SCAN_INTERVAL_SEC, name="text-change scan"),
            PeriodicTask(self.poll, settings.SCAN_POLL_INTERVAL_SEC, name="caption poll"),
        ]

    @property
    def active(self) -> bool:
        return self.metadata.active

    @property
    def provider(self) -> Optional[AIProvider]:
        return self.correction.provider

    @provider.setter
    def provider(self, provider: Optional[AIProvider]) -> None:
        self.correction.provider = provider
        self.assist.provider = provider

    # --- lifecycle ---

    def _reset_session_state(self, keep_transcript: bool = False) -> None:
        if not keep_transcript:
            self.store.clear()
        self.diff.reset()
        self.flush.reset()
        self.correction.reset()
        self._commits_since_checkpoint = 0

    async def activate(
        self,
        source_lang: Optional[str] = None,
        target_lang: Optional[str] = None,
        platform: Optional[str] = None,
        spelling_correction: Optional[bool] = None,
        resume: bool = False,
    ) -> None:
        """Start a session. resume=True keeps a restored transcript."""
        if self.metadata.active and not resume:
            await self._stop_tasks()
        self._reset_session_state(keep_transcript=resume)
        self.speakers = SpeakerRegistry()
        self.source = PageObservationSource(self.speakers, platform=platform)
        if source_lang:
            self.metadata.source_lang = source_lang
        if target_lang:
            self.metadata.target_lang = target_lang
        if spelling_correction is not None:
            self.metadata.spelling_correction = spelling_correction
        self.correction.enabled = self.metadata.spelling_correction
        self.metadata.platform = platform
        self.metadata.active = True
        await self.checkpoints.start()
        if self._periodic:
            for task in self._tasks:
                task.start()
        if resume and len(self.store):
            self.flush.mark_dirty()
        logger.info(
            "Session activated: %s -> %s, platform=%s, correction=%s",
            self.metadata.source_lang, self.metadata.target_lang,
            platform or "auto", self.metadata.spelling_correction,
        )
        self._checkpoint()

    async def deactivate(self) -> None:
        await self._stop_tasks()
        self._reset_session_state()
        self.source.reset()
        self.metadata.active = False
        self.metadata.platform = None
        self._checkpoint()
        logger.info("Session deactivated")

    async def clear(self) -> None:
        """Empty the transcript and the sink; capture keeps running."""
        self._reset_session_state()
        try:
            await self.sink.clear()
        except SinkUnavailableError as e:
            logger.debug("Sink clear skipped: %s", e)
        except Exception as e:
            logger.warning("Sink clear failed: %s", e)
        self._checkpoint()
        logger.info("Transcript cleared")

    async def _stop_tasks(self) -> None:
        for task in self._tasks:
            await task.stop()

    async def restore(self, state_dir: Optional[str] = None) -> bool:
        """Load the last checkpoint; resume the session if it was active. True when resumed."""
        metadata, blocks = load_state(self.handles, state_dir)
        self.metadata = metadata
        if blocks and not len(self.store):
            self.store.restore(blocks)
        if metadata.active:
            await self.activate(platform=metadata.platform, resume=True)
            return True
        return False

    async def shutdown(self) -> None:
        await self._stop_tasks()
        self.flush.cancel()
        self._checkpoint()
        await self.checkpoints.close()
        await self.correction.drain()

    # --- input ---

    def ingest_page(self, payload: dict[str, Any]) -> bool:
        """Page snapshot from the browser agent. False when ignored (inactive or malformed)."""
        if not self.metadata.active:
            return False
        try:
            tree = PageTree.from_payload(payload)
        except ValueError as e:
            logger.warning("Bad page snapshot: %s", e)
            return False
        self.source.observe(tree)
        if self.metadata.platform is None or self.metadata.platform != self.source.profile.name:
            self.metadata.platform = self.source.profile.name
        return True

    def ingest_batch(self, captions: list[dict[str, Any]], platform: Optional[str] = None) -> Optional[DiffResult]:
        """Already-extracted captions (platform content script). None when inactive."""
        if not self.metadata.active:
            return None
        if platform:
            self.metadata.platform = platform
        observations = []
        for item in captions:
            text = clean_text(str(item.get("text") or ""))
            if not text:
                continue
            speaker = str(item.get("speaker") or "").strip()
            self.speakers.remember(speaker)
            observations.append(CaptionObservation(speaker=speaker, text=text))
        return self.apply_snapshot(observations)

    def poll(self) -> Optional[DiffResult]:
        """Extract from the attached region and diff. None when there is nothing to read."""
        if not self.metadata.active:
            return None
        observations = self.source.poll()
        if observations is None:
            return None
        return self.apply_snapshot(observations)

    def apply_snapshot(self, observations: list[CaptionObservation]) -> DiffResult:
        result = self.diff.apply(observations)
        if not result.changed:
            return result
        self.flush.mark_dirty()
        commits = result.commits
        if commits:
            self._commits_since_checkpoint += commits
            if self._commits_since_checkpoint >= self._checkpoint_every:
                self._commits_since_checkpoint = 0
                self._checkpoint()
        return result

    def _run_probe(self) -> None:
        self.source.run_probe()

    def _run_mutation_eval(self) -> None:
        self.source.run_mutation_eval()

    def _run_text_scan(self) -> None:
        self.source.run_text_scan()

    # --- output ---

    def _request_correction(self) -> None:
        self.correction.request_latest()

    async def _push_after_correction(self) -> None:
        await self.flush.push_now()

    def _checkpoint(self) -> None:
        self.checkpoints.enqueue(build_state(self.metadata, self.store.committed))

    def status(self) -> dict[str, Any]:
        return {
            "active": self.metadata.active,
            "source_lang": self.metadata.source_lang,
            "target_lang": self.metadata.target_lang,
            "platform": self.metadata.platform,
            "discovery": self.source.state.value,
            "attached_via": self.source.discovery.attached_via,
            "committed_blocks": len(self.store),
            "visible_lines": len(self.store.visible),
            "spelling_correction": self.metadata.spelling_correction,
            "provider": self.provider.name if self.provider is not None else None,
            "sinks": len(self.sink.handles) if isinstance(self.sink, SinkRouter) else None,
        }
