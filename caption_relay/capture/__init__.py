"""Caption capture: page model, caption-region discovery, snapshot extraction."""
from .discovery import DiscoveryState, SourceDiscovery
from .dom import Descriptor, PageNode, PageTree
from .extractor import SnapshotExtractor
from .filters import SpeakerRegistry, looks_like_captions
from .platforms import PlatformProfile, detect_platform
from .source import PageObservationSource

__all__ = [
    "Descriptor",
    "DiscoveryState",
    "PageNode",
    "PageObservationSource",
    "PageTree",
    "PlatformProfile",
    "SnapshotExtractor",
    "SourceDiscovery",
    "SpeakerRegistry",
    "detect_platform",
    "looks_like_captions",
]
