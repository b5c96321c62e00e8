"""
SourceDiscovery: find the caption region and notice when it goes away.

States: SEARCHING -> CANDIDATE_PENDING -> ATTACHED, and ATTACHED -> SEARCHING
when the attached node disappears from the page. All three strategies run on
their own cadence but promotion goes through one method, so the first proposal
wins and later ones in the same round are discarded.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from caption_relay.capture.dom import PageNode, PageTree
from caption_relay.capture.platforms import PlatformProfile
from caption_relay.capture.strategies import DescriptorProbe, MutationScorer, TextChangeScanner

logger = logging.getLogger(__name__)


class DiscoveryState(str, Enum):
    SEARCHING = "searching"
    CANDIDATE_PENDING = "candidate_pending"
    ATTACHED = "attached"


class SourceDiscovery:
    def __init__(
        self,
        profile: PlatformProfile,
        probe: Optional[DescriptorProbe] = None,
        scorer: Optional[MutationScorer] = None,
        scanner: Optional[TextChangeScanner] = None,
        on_attach: Optional[Callable[[PageNode, str], None]] = None,
        on_detach: Optional[Callable[[], None]] = None,
    ) -> None:
        self.probe = probe or DescriptorProbe(profile)
        self.scorer = scorer or MutationScorer()
        self.scanner = scanner or TextChangeScanner()
        self.on_attach = on_attach
        self.on_detach = on_detach
        self._tree: Optional[PageTree] = None
        self.attached_id: Optional[str] = None
        self.attached_via: Optional[str] = None

    @property
    def profile(self) -> PlatformProfile:
        return self.probe.profile

    @property
    def state(self) -> DiscoveryState:
        if self.attached_id is not None:
            return DiscoveryState.ATTACHED
        if self.probe.pending is not None:
            return DiscoveryState.CANDIDATE_PENDING
        return DiscoveryState.SEARCHING

    @property
    def tree(self) -> Optional[PageTree]:
        return self._tree

    def observe(self, tree: PageTree) -> None:
        """Take a new page snapshot. Mutations only count while searching."""
        self._tree = tree
        if self.attached_id is None:
            self.scorer.record(tree, tree.mutations)

    def run_probe(self) -> bool:
        if self.attached_id is not None:
            self.probe.reset()
            return False
        if self._tree is None:
            return False
        node_id = self.probe.probe(self._tree)
        return node_id is not None and self._propose(node_id, "descriptor probe")

    def run_mutation_eval(self) -> bool:
        if self.attached_id is not None or self._tree is None:
            self.scorer.reset()
            return False
        node_id = self.scorer.evaluate(self._tree)
        return node_id is not None and self._propose(node_id, "mutation scoring")

    def run_text_scan(self) -> bool:
        if self.attached_id is not None or self._tree is None:
            self.scanner.reset()
            return False
        node_id = self.scanner.scan(self._tree)
        return node_id is not None and self._propose(node_id, "text-change scan")

    def revalidate(self) -> bool:
        """True while the attached node is still in the latest snapshot. Detaches otherwise."""
        if self.attached_id is None:
            return False
        if self._tree is not None and self._tree.contains(self.attached_id):
            return True
        logger.info("Caption region %s detached; searching again", self.attached_id)
        self._clear_tracking()
        if self.on_detach is not None:
            self.on_detach()
        return False

    def _propose(self, node_id: str, source: str) -> bool:
        if self.attached_id is not None:
            logger.debug("Proposal %s via %s discarded: already attached", node_id, source)
            return False
        node = self._tree.get(node_id) if self._tree is not None else None
        if node is None:
            return False
        self._clear_tracking()
        self.attached_id = node_id
        self.attached_via = source
        logger.info("Caption region found via %s: %s", source, node_id)
        if self.on_attach is not None:
            self.on_attach(node, source)
        return True

    def _clear_tracking(self) -> None:
        self.attached_id = None
        self.attached_via = None
        self.probe.reset()
        self.scorer.reset()
        self.scanner.reset()

    def reset(self, profile: Optional[PlatformProfile] = None) -> None:
        """Forget everything (activate/deactivate, platform change)."""
        self._clear_tracking()
        self._tree = None
        if profile is not None:
            self.probe.profile = profile
