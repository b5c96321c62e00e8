"""Per-platform descriptors: where captions usually live on each meeting site."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from caption_relay.capture.dom import Descriptor


def _aria(value: str) -> Descriptor:
    return Descriptor(attr="aria-label", value=value, match="contains", case_insensitive=True)


def _tid(value: str) -> Descriptor:
    return Descriptor(attr="data-tid", value=value)


def _class_has(value: str) -> Descriptor:
    return Descriptor(attr="class", value=value, match="contains")


@dataclass(frozen=True)
class PlatformProfile:
    """
    containers: ranked descriptors for the caption region.
    entries: descriptors for one caption line inside the region.
    speaker_field / text_field: parts of an entry (structured extraction).
    default_speaker: label for entries whose speaker field is empty.
    """

    name: str
    containers: tuple[Descriptor, ...] = ()
    entries: tuple[Descriptor, ...] = ()
    speaker_field: Optional[Descriptor] = None
    text_field: Optional[Descriptor] = None
    default_speaker: str = ""


MEET = PlatformProfile(
    name="meet",
    containers=(_aria("captions"),),
)

TEAMS = PlatformProfile(
    name="teams",
    containers=(
        _tid("closed-caption-v2-window-wrapper"),
        _tid("closed-captions-renderer"),
        _tid("live-captions-renderer"),
        _aria("caption"),
        _aria("subtitle"),
        Descriptor(class_name="ts-captions-container"),
        _class_has("captionsContainer"),
        _class_has("captions-banner"),
        _class_has("CaptionsBanner"),
    ),
    entries=(
        Descriptor(class_name="fui-ChatMessageCompact"),
        _tid("closed-caption-item"),
        _tid("live-caption-item"),
        _class_has("captionItem"),
        _class_has("CaptionItem"),
        _class_has("caption-line"),
    ),
    speaker_field=_tid("author"),
    text_field=_tid("closed-caption-text"),
    default_speaker="Participant",
)

ZOOM = PlatformProfile(
    name="zoom",
    containers=(
        Descriptor(class_name="closed-caption-wrap"),
        Descriptor(attr="id", value="live-transcription-content"),
        _aria("caption"),
        _aria("subtitle"),
        _aria("transcript"),
        Descriptor(class_name="meeting-subtitles"),
        _class_has("closedcaption"),
        _class_has("closed-caption"),
        Descriptor(class_name="subtitle-message-container"),
    ),
    entries=(
        Descriptor(class_name="closed-caption-single-message"),
        Descriptor(class_name="closedcaption-single-message"),
        _class_has("subtitle-message-item"),
        _class_has("transcription-item"),
        _class_has("transcript-message"),
    ),
)

GENERIC = PlatformProfile(
    name="generic",
    containers=(_aria("caption"), _aria("subtitle")),
)

PROFILES: dict[str, PlatformProfile] = {p.name: p for p in (MEET, TEAMS, ZOOM, GENERIC)}


def detect_platform(url: str) -> PlatformProfile:
    """Profile for the page host; generic when the site is not a known meeting platform."""
    host = (urlsplit(url or "").hostname or "").lower()
    if host == "meet.google.com":
        return MEET
    if host.endswith("teams.microsoft.com") or host.endswith("teams.live.com"):
        return TEAMS
    if host == "zoom.us" or host.endswith(".zoom.us"):
        return ZOOM
    return GENERIC


def get_profile(name: Optional[str]) -> PlatformProfile:
    return PROFILES.get((name or "").lower(), GENERIC)
