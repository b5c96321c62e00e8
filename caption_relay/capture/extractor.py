"""
SnapshotExtractor: read the attached caption region as a list of observations.

Tiers, each tried only when the previous produced nothing:
1. structured entries (platform entry descriptors)
2. rendered text split into lines, grouped under speaker-label lines
3. tree walk classifying leaf texts as labels or speech
4. the whole region as one unattributed line
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from caption_relay.capture.dom import PageNode, PageTree
from caption_relay.capture.filters import (
    SpeakerRegistry,
    clean_text,
    is_likely_name,
    looks_like_captions,
    looks_like_speaker_label,
)
from caption_relay.capture.platforms import PlatformProfile
from caption_relay.transcript.models import CaptionObservation

logger = logging.getLogger(__name__)

_WALK_SKIP = frozenset({"img", "svg", "button", "input"})

Tier = Callable[[PageNode], list[CaptionObservation]]


def _lines(text: str) -> list[str]:
    return [l.strip() for l in (text or "").split("\n") if l.strip()]


class SnapshotExtractor:
    def __init__(self, profile: PlatformProfile, speakers: Optional[SpeakerRegistry] = None) -> None:
        self.profile = profile
        self.speakers = speakers if speakers is not None else SpeakerRegistry()
        self.attached_id: Optional[str] = None
        self._chain: list[tuple[str, Tier]] = []
        self.last_tier: Optional[str] = None

    def attach(self, node_id: str, profile: Optional[PlatformProfile] = None) -> None:
        """Bind to a caption region. The tier chain is fixed here, not re-chosen per tick."""
        if profile is not None:
            self.profile = profile
        self.attached_id = node_id
        self._chain = []
        if self.profile.entries:
            self._chain.append(("structured", self._structured))
        self._chain.extend([
            ("line-grouping", self._grouped_lines),
            ("tree-walk", self._tree_walk),
            ("raw", self._raw),
        ])

    def detach(self) -> None:
        self.attached_id = None
        self._chain = []
        self.last_tier = None

    def extract(self, tree: PageTree) -> Optional[list[CaptionObservation]]:
        """None when no region is attached (or it is gone); otherwise the visible lines."""
        if self.attached_id is None:
            return None
        container = tree.get(self.attached_id)
        if container is None:
            return None
        for name, tier in self._chain:
            out = tier(container)
            if out:
                self.last_tier = name
                return out
        self.last_tier = None
        return []

    def _structured(self, container: PageNode) -> list[CaptionObservation]:
        for descriptor in self.profile.entries:
            entries = [e for e in container.iter_descendants() if descriptor.matches(e)]
            if not entries:
                continue
            out = [obs for obs in (self._read_entry(e) for e in entries) if obs is not None]
            if out:
                return out
        return []

    def _read_entry(self, entry: PageNode) -> Optional[CaptionObservation]:
        speaker, text = "", ""
        fields = False
        if self.profile.speaker_field is not None or self.profile.text_field is not None:
            sp_node = self._find(entry, self.profile.speaker_field)
            tx_node = self._find(entry, self.profile.text_field)
            if tx_node is not None:
                fields = True
                speaker = sp_node.inner_text.strip() if sp_node is not None else ""
                text = tx_node.inner_text.replace("\n", " ")
        if not fields:
            lines = _lines(entry.inner_text)
            if len(lines) >= 2 and is_likely_name(lines[0], self.speakers):
                speaker, text = lines[0], " ".join(lines[1:])
            else:
                text = " ".join(lines)
        text = clean_text(text)
        if not text or not looks_like_captions(text):
            return None
        speaker = speaker or self.profile.default_speaker
        self.speakers.remember(speaker)
        return CaptionObservation(speaker=speaker, text=text)

    @staticmethod
    def _find(entry: PageNode, descriptor) -> Optional[PageNode]:
        if descriptor is None:
            return None
        for node in entry.iter_descendants():
            if descriptor.matches(node):
                return node
        return None

    def _grouped_lines(self, container: PageNode) -> list[CaptionObservation]:
        lines = _lines(container.inner_text)
        if len(lines) < 2:
            return []
        out: list[CaptionObservation] = []
        i = 0
        while i < len(lines):
            line = lines[i]
            if is_likely_name(line, self.speakers):
                self.speakers.remember(line)
                parts: list[str] = []
                i += 1
                while i < len(lines):
                    nxt = lines[i]
                    # A label needs at least one line of speech before another label can start
                    if is_likely_name(nxt, self.speakers) and (parts or nxt in self.speakers):
                        break
                    cleaned = clean_text(nxt)
                    if cleaned and looks_like_captions(cleaned):
                        parts.append(cleaned)
                    i += 1
                text = " ".join(parts).strip()
                if text:
                    out.append(CaptionObservation(speaker=line, text=text))
            else:
                cleaned = clean_text(line)
                if len(cleaned) > 10 and looks_like_captions(cleaned):
                    out.append(CaptionObservation(speaker="", text=cleaned))
                i += 1
        return out

    def _tree_walk(self, container: PageNode) -> list[CaptionObservation]:
        out: list[CaptionObservation] = []
        state = {"speaker": "", "parts": []}

        def save() -> None:
            text = clean_text(" ".join(state["parts"]))
            if state["speaker"]:
                self.speakers.remember(state["speaker"])
                out.append(CaptionObservation(speaker=state["speaker"], text=text))
            elif text and looks_like_captions(text):
                out.append(CaptionObservation(speaker="", text=text))
            state["speaker"], state["parts"] = "", []

        def walk(node: PageNode) -> None:
            if node.is_text:
                t = node.text.strip()
                if t:
                    state["parts"].append(t)
                return
            if node.tag in _WALK_SKIP or not node.visible:
                return
            if not node.element_children:
                t = node.text_content.strip()
                if not t:
                    return
                if looks_like_speaker_label(t, node, self.speakers):
                    save()
                    state["speaker"] = t
                else:
                    state["parts"].append(t)
                return
            for child in node.children:
                walk(child)

        walk(container)
        save()
        if not any(o.speaker and o.text for o in out):
            return []
        return [o for o in out if o.text]

    def _raw(self, container: PageNode) -> list[CaptionObservation]:
        raw = container.inner_text.strip()
        if raw and looks_like_captions(raw):
            return [CaptionObservation(speaker="", text=" ".join(raw.split()))]
        return []
