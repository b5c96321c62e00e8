"""
DiffCommitEngine: turns consecutive caption snapshots into transcript commits.

A caption line is committed when it disappears from the screen. A line is
"still visible" when some line of the new snapshot is the same utterance:
exact or prefix match on normalized text, a long shared head, or similar
word sets.
Recognition revisions therefore do not commit; scrolling lines off screen does.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from caption_relay.config import get_settings
from caption_relay.transcript.models import CaptionObservation, CommitOutcome
from caption_relay.transcript.similarity import common_prefix_len, is_revision, normalize, speakers_compatible
from caption_relay.transcript.store import TranscriptStore

logger = logging.getLogger(__name__)


@dataclass
class DiffResult:
    """Outcome of one snapshot. changed=False means an identical re-delivery (nothing touched)."""

    changed: bool
    outcomes: list[tuple[CaptionObservation, CommitOutcome]] = field(default_factory=list)

    @property
    def commits(self) -> int:
        """Commits that changed the transcript (appended or replaced)."""
        return sum(1 for _, o in self.outcomes if o != CommitOutcome.IGNORED)


class DiffCommitEngine:
    def __init__(
        self,
        store: TranscriptStore,
        similarity_threshold: float | None = None,
        min_tokens: int | None = None,
        prefix_min_chars: int | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._threshold = similarity_threshold if similarity_threshold is not None else settings.SIMILARITY_THRESHOLD
        self._min_tokens = min_tokens if min_tokens is not None else settings.SIMILARITY_MIN_TOKENS
        self._prefix_min = prefix_min_chars if prefix_min_chars is not None else settings.PREFIX_MIN_CHARS
        self._previous: list[CaptionObservation] = []

    @property
    def previous(self) -> list[CaptionObservation]:
        return list(self._previous)

    def _same_line(self, prev: CaptionObservation, cur: CaptionObservation) -> bool:
        if not speakers_compatible(prev.speaker, cur.speaker):
            return False
        # Punctuation and case differ between revisions ("Yes I" / "Yes, I do")
        a, b = normalize(prev.text), normalize(cur.text)
        if not a or not b:
            return False
        if len(a) > self._prefix_min and len(b) > self._prefix_min:
            if common_prefix_len(a, b) > 0.6 * min(len(a), len(b)):
                return True
        return is_revision(a, b, self._threshold, self._min_tokens)

    def still_visible(self, prev: CaptionObservation, current: list[CaptionObservation]) -> bool:
        return any(self._same_line(prev, cur) for cur in current)

    def disappeared(self, current: list[CaptionObservation]) -> list[CaptionObservation]:
        """Previous observations with no counterpart in current, in screen order."""
        if not current:
            return [p for p in self._previous if p.text.strip()]
        return [p for p in self._previous if p.text.strip() and not self.still_visible(p, current)]

    def apply(self, current: list[CaptionObservation]) -> DiffResult:
        """Commit what disappeared, then make current the visible tail."""
        current = [c for c in current if c.text.strip()]
        if current == self._previous:
            return DiffResult(changed=False)
        outcomes = [(obs, self._store.commit(obs)) for obs in self.disappeared(current)]
        self._store.set_visible(current)
        self._previous = current
        if outcomes:
            logger.debug(
                "Snapshot diff: %d disappeared, %d committed",
                len(outcomes), sum(1 for _, o in outcomes if o != CommitOutcome.IGNORED),
            )
        return DiffResult(changed=True, outcomes=outcomes)

    def reset(self) -> None:
        self._previous = []
