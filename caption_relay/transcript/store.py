"""
TranscriptStore: committed blocks plus the currently visible (uncommitted) tail.

The externally visible transcript is committed ++ visible. It is rebuilt on
demand; cost is O(committed + visible), fine at caption cadence (a few Hz).

Commit rule (anti-duplication):
- last block has same speaker and identical text -> ignore (already committed)
- same speaker and the new text is a revision of the last text -> replace when the
  new text is strictly longer or its head differs (a correction); a shorter
  truncation of the same utterance is ignored
- anything else -> append a new block
"""
from __future__ import annotations

import logging

from caption_relay.config import get_settings
from caption_relay.transcript.models import (
    CaptionObservation,
    CommitOutcome,
    CommittedBlock,
    TranscriptEntry,
)
from caption_relay.transcript.similarity import is_revision, shares_head

logger = logging.getLogger(__name__)


class TranscriptStore:
    """Single ordered record of committed utterances and the visible tail."""

    def __init__(
        self,
        similarity_threshold: float | None = None,
        min_tokens: int | None = None,
        head_chars: int | None = None,
    ) -> None:
        settings = get_settings()
        self._threshold = similarity_threshold if similarity_threshold is not None else settings.SIMILARITY_THRESHOLD
        self._min_tokens = min_tokens if min_tokens is not None else settings.SIMILARITY_MIN_TOKENS
        self._head_chars = head_chars if head_chars is not None else settings.REVISION_HEAD_CHARS
        self._committed: list[CommittedBlock] = []
        self._visible: list[CaptionObservation] = []

    def __len__(self) -> int:
        return len(self._committed)

    @property
    def committed(self) -> list[CommittedBlock]:
        """Read-only copy of committed blocks in commit order."""
        return list(self._committed)

    @property
    def visible(self) -> list[CaptionObservation]:
        return list(self._visible)

    @property
    def last_committed(self) -> CommittedBlock | None:
        return self._committed[-1] if self._committed else None

    def contains(self, block: CommittedBlock) -> bool:
        return any(b is block for b in self._committed)

    def commit(self, observation: CaptionObservation) -> CommitOutcome:
        """Convert a disappearing observation into a transcript entry."""
        text = (observation.text or "").strip()
        speaker = observation.speaker or ""
        if not text:
            return CommitOutcome.IGNORED
        last = self.last_committed
        if last is not None and last.speaker == speaker:
            if last.text == text:
                return CommitOutcome.IGNORED
            if is_revision(last.text, text, self._threshold, self._min_tokens):
                if len(text) > len(last.text) or not shares_head(text, last.text, self._head_chars):
                    last.text = text
                    logger.debug("Commit replaced tail block (%s): %s", speaker or "-", text)
                    return CommitOutcome.REPLACED
                return CommitOutcome.IGNORED
        self._committed.append(CommittedBlock(speaker=speaker, text=text))
        logger.debug("Commit appended block #%d (%s): %s", len(self._committed), speaker or "-", text)
        return CommitOutcome.APPENDED

    def set_visible(self, observations: list[CaptionObservation]) -> None:
        self._visible = list(observations)

    def view(self) -> list[TranscriptEntry]:
        """Committed blocks followed by the visible tail as provisional entries."""
        result = [TranscriptEntry(speaker=b.speaker, text=b.text) for b in self._committed]
        for obs in self._visible:
            text = (obs.text or "").strip()
            if not text:
                continue
            last = result[-1] if result else None
            if last is not None and last.speaker == obs.speaker:
                # Live line of the current speaker updates in place
                last.text = text
                last.provisional = True
            else:
                result.append(TranscriptEntry(speaker=obs.speaker, text=text, provisional=True))
        return result

    def tail(self, count: int) -> list[dict[str, str]]:
        """Most recent count entries of the view as {speaker, text}."""
        if count <= 0:
            return []
        return [e.to_dict() for e in self.view()[-count:]]

    def format_tail(self, count: int | None = None) -> tuple[str, int]:
        """Render entries as 'Speaker: text' separated by blank lines. count=None = all."""
        entries = self.view()
        if count is not None:
            entries = entries[-count:] if count > 0 else []
        lines = [f"{e.speaker}: {e.text}" if e.speaker else e.text for e in entries]
        return "\n\n".join(lines), len(entries)

    def apply_correction(self, block: CommittedBlock, expected_text: str, corrected: str) -> bool:
        """Replace block text only if it is still in the transcript and unchanged since the request."""
        if not self.contains(block) or block.text != expected_text:
            return False
        block.text = corrected
        return True

    def restore(self, blocks: list[CommittedBlock]) -> None:
        """Load persisted blocks into an empty store (process restart)."""
        if self._committed:
            raise RuntimeError("restore() requires an empty transcript")
        self._committed = list(blocks)

    def clear(self) -> None:
        """Explicit reset: the only operation that shortens the transcript."""
        self._committed = []
        self._visible = []
