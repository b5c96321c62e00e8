"""
PageObservationSource: page snapshots in, caption snapshots out.

Glues platform detection, SourceDiscovery and SnapshotExtractor together.
The engine calls observe() for each page message and the run_* / poll()
methods from its periodic tasks.
"""
from __future__ import annotations

import logging
from typing import Optional

from caption_relay.capture.discovery import DiscoveryState, SourceDiscovery
from caption_relay.capture.dom import PageNode, PageTree
from caption_relay.capture.extractor import SnapshotExtractor
from caption_relay.capture.filters import SpeakerRegistry
from caption_relay.capture.platforms import PlatformProfile, detect_platform, get_profile
from caption_relay.transcript.models import CaptionObservation

logger = logging.getLogger(__name__)


class PageObservationSource:
    def __init__(
        self,
        speakers: Optional[SpeakerRegistry] = None,
        platform: Optional[str] = None,
        discovery: Optional[SourceDiscovery] = None,
    ) -> None:
        self.speakers = speakers if speakers is not None else SpeakerRegistry()
        self._forced = get_profile(platform) if platform else None
        profile = self._forced or get_profile("generic")
        self.extractor = SnapshotExtractor(profile, self.speakers)
        self.discovery = discovery or SourceDiscovery(profile)
        self.discovery.on_attach = self._attached
        self.discovery.on_detach = self._detached
        self._fresh = False

    @property
    def profile(self) -> PlatformProfile:
        return self.discovery.profile

    @property
    def state(self) -> DiscoveryState:
        return self.discovery.state

    def _attached(self, node: PageNode, source: str) -> None:
        self.extractor.attach(node.id, self.profile)
        self._fresh = True

    def _detached(self) -> None:
        self.extractor.detach()

    def observe(self, tree: PageTree) -> None:
        """New page snapshot. A different platform host restarts discovery."""
        profile = self._forced or detect_platform(tree.url)
        if profile.name != self.profile.name:
            logger.info("Platform changed: %s -> %s", self.profile.name, profile.name)
            self.extractor.detach()
            self.discovery.reset(profile)
            self.extractor.profile = profile
        self.discovery.observe(tree)
        self._fresh = True

    def run_probe(self) -> bool:
        return self.discovery.run_probe()

    def run_mutation_eval(self) -> bool:
        return self.discovery.run_mutation_eval()

    def run_text_scan(self) -> bool:
        return self.discovery.run_text_scan()

    def poll(self) -> Optional[list[CaptionObservation]]:
        """Current caption lines, or None when nothing new can be read (no region / no new snapshot)."""
        if not self.discovery.revalidate():
            return None
        if not self._fresh:
            return None
        self._fresh = False
        tree = self.discovery.tree
        if tree is None:
            return None
        return self.extractor.extract(tree)

    def reset(self) -> None:
        self.extractor.detach()
        self.discovery.reset()
        self._fresh = False
