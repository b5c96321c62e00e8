"""
Caption-region discovery strategies.

Each strategy looks at the latest page snapshot and may propose one node id as
the caption region. None of them attaches anything; SourceDiscovery decides.

- DescriptorProbe: known platform descriptors, confirmed by a text change.
- MutationScorer: the subtree that keeps receiving text mutations.
- TextChangeScanner: the smallest lower-screen box whose text keeps changing.
"""
from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Optional

from caption_relay.capture.dom import MutationRecord, PageNode, PageTree
from caption_relay.capture.filters import looks_like_captions
from caption_relay.capture.platforms import PlatformProfile
from caption_relay.config import get_settings

logger = logging.getLogger(__name__)

_ROOT_TAGS = frozenset({"body", "html"})
_SCAN_TAGS = frozenset({"div", "span", "section"})


def _is_top(node: Optional[PageNode]) -> bool:
    return node is None or node.tag in _ROOT_TAGS


def expand_to_caption_block(node: PageNode, levels: int = 6, max_height: float = 500.0) -> PageNode:
    """Grow node upward while the parent is short and holds >= 2 caption-shaped children."""
    container = node
    for _ in range(levels):
        parent = container.parent
        if _is_top(parent) or parent.rect.height > max_height:
            break
        caption_kids = 0
        for child in parent.element_children:
            text = child.inner_text.strip()
            if len(text) > 3 and looks_like_captions(text):
                caption_kids += 1
        if caption_kids < 2:
            break
        container = parent
    return container


@dataclass
class PendingCandidate:
    node_id: str
    observed_text: str
    discovered_at: float


class DescriptorProbe:
    def __init__(
        self,
        profile: PlatformProfile,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = get_settings()
        self.profile = profile
        self._timeout = timeout if timeout is not None else settings.CANDIDATE_TIMEOUT_SEC
        self._clock = clock
        self.pending: Optional[PendingCandidate] = None

    def probe(self, tree: PageTree) -> Optional[str]:
        """Return a node id to attach, or None (possibly after recording a pending candidate)."""
        if self.pending is not None:
            node = tree.get(self.pending.node_id)
            if node is None:
                self.pending = None
            else:
                text = node.inner_text.strip()
                if text and text != self.pending.observed_text and looks_like_captions(text):
                    return node.id
                if self._clock() - self.pending.discovered_at > self._timeout:
                    logger.debug("Pending caption candidate %s timed out", self.pending.node_id)
                    self.pending = None
                else:
                    return None

        for descriptor in self.profile.containers:
            node = tree.query(descriptor)
            if node is None or not node.visible:
                continue
            text = node.inner_text.strip()
            if text and looks_like_captions(text):
                self.pending = PendingCandidate(node.id, text, self._clock())
                logger.debug("Caption candidate %s via %s", node.id, descriptor)
                return None
        return None

    def reset(self) -> None:
        self.pending = None


class MutationScorer:
    def __init__(
        self,
        min_hits: Optional[int] = None,
        burst_limit: Optional[int] = None,
        walk_levels: Optional[int] = None,
        walk_max_height: Optional[float] = None,
        expand_levels: Optional[int] = None,
        expand_max_height: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self._min_hits = min_hits if min_hits is not None else settings.MIN_MUTATION_HITS
        self._burst_limit = burst_limit if burst_limit is not None else settings.MUTATION_BURST_LIMIT
        self._walk_levels = walk_levels if walk_levels is not None else settings.MUTATION_WALK_LEVELS
        self._walk_max_height = walk_max_height if walk_max_height is not None else settings.MUTATION_WALK_MAX_HEIGHT
        self._expand_levels = expand_levels if expand_levels is not None else settings.BLOCK_EXPAND_LEVELS
        self._expand_max_height = expand_max_height if expand_max_height is not None else settings.BLOCK_EXPAND_MAX_HEIGHT
        self.hits: Counter[str] = Counter()

    def record(self, tree: PageTree, mutations: list[MutationRecord]) -> None:
        """Count one hit per text mutation on the highest short ancestor of its element."""
        if len(mutations) > self._burst_limit:
            return
        for m in mutations:
            target = tree.get(m.target)
            if target is None:
                continue
            if m.type == "characterData":
                el = target.parent if target.is_text else target
            elif m.added_text and not target.is_text:
                el = target
            else:
                continue
            if el is None:
                continue
            for _ in range(self._walk_levels):
                parent = el.parent
                if _is_top(parent) or parent.rect.height > self._walk_max_height:
                    break
                el = parent
            self.hits[el.id] += 1

    def evaluate(self, tree: PageTree) -> Optional[str]:
        best: Optional[PageNode] = None
        best_count = 0
        for node_id, count in self.hits.items():
            node = tree.get(node_id)
            if count > best_count and node is not None and node.visible:
                best, best_count = node, count
        self.hits.clear()
        if best is None or best_count < self._min_hits:
            return None
        container = expand_to_caption_block(best, self._expand_levels, self._expand_max_height)
        text = container.inner_text.strip()
        if 10 <= len(text) < 3000 and looks_like_captions(text):
            logger.debug("Mutation scoring proposes %s (%d hits)", container.id, best_count)
            return container.id
        return None

    def reset(self) -> None:
        self.hits.clear()


class TextChangeScanner:
    def __init__(
        self,
        min_changes: Optional[int] = None,
        viewport_fraction: Optional[float] = None,
        prune_size: Optional[int] = None,
        expand_levels: Optional[int] = None,
        expand_max_height: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self._min_changes = min_changes if min_changes is not None else settings.TEXT_SCAN_MIN_CHANGES
        self._fraction = viewport_fraction if viewport_fraction is not None else settings.TEXT_SCAN_VIEWPORT_FRACTION
        self._prune_size = prune_size if prune_size is not None else settings.TEXT_SCAN_PRUNE_SIZE
        self._expand_levels = expand_levels if expand_levels is not None else settings.BLOCK_EXPAND_LEVELS
        self._expand_max_height = expand_max_height if expand_max_height is not None else settings.BLOCK_EXPAND_MAX_HEIGHT
        self.previous: dict[str, str] = {}
        self.changes: Counter[str] = Counter()

    def scan(self, tree: PageTree) -> Optional[str]:
        view_h = tree.viewport_height
        best: Optional[PageNode] = None
        best_area = float("inf")
        for node in tree.elements():
            if node.tag not in _SCAN_TAGS:
                continue
            r = node.rect
            if r.bottom < view_h * self._fraction or r.top > view_h:
                continue
            if r.height < 12 or r.height > 350 or r.width < 120:
                continue
            text = node.inner_text.strip()
            if len(text) < 5 or len(text) > 3000:
                continue
            prev = self.previous.get(node.id)
            self.previous[node.id] = text
            if prev is None or prev == text:
                continue
            self.changes[node.id] += 1
            if self.changes[node.id] >= self._min_changes and looks_like_captions(text):
                if r.area < best_area:
                    best, best_area = node, r.area

        if best is not None:
            container = expand_to_caption_block(best, self._expand_levels, self._expand_max_height)
            self.reset()
            logger.debug("Text-change scan proposes %s", container.id)
            return container.id

        if len(self.previous) > self._prune_size:
            for node_id in [i for i in self.previous if not tree.contains(i)]:
                self.previous.pop(node_id, None)
                self.changes.pop(node_id, None)
        return None

    def reset(self) -> None:
        self.previous.clear()
        self.changes.clear()
