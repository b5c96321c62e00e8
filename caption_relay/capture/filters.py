"""
Text heuristics for caption capture: is this caption-shaped, is this a speaker label.

Meeting pages are full of icon-font ligatures ("more_vert"), button labels,
clocks, meeting codes and keyboard hints that change often enough to look like
live text. These filters keep them out of discovery and out of the transcript.
"""
from __future__ import annotations

import re
from typing import Optional

from caption_relay.capture.dom import PageNode

ICON_LIGATURES = frozenset({
    "more_vert", "more_horiz", "frame_person", "visual_effects", "mic_off",
    "mic_none", "videocam", "videocam_off", "present_to_all",
    "call_end", "back_hand", "emoji_objects", "closed_caption",
    "pan_tool", "push_pin", "volume_up", "volume_off", "volume_mute",
    "screen_share", "stop_screen_share", "keyboard_arrow_down",
    "keyboard_arrow_up", "keyboard_arrow_left", "keyboard_arrow_right",
    "fiber_manual_record", "radio_button_checked", "radio_button_unchecked",
    "check_box", "check_box_outline_blank", "chat_bubble",
    "people_alt", "person_add", "person_remove",
    "info_outline", "lock_person", "lock_open",
    "meeting_room", "sentiment_satisfied", "thumb_up", "thumb_down",
    "computer_arrow_up", "open_in_new", "content_copy",
    "format_size", "format_color_text", "format_color_fill",
    "help_outline", "arrow_back", "arrow_forward", "arrow_upward",
    "arrow_downward", "chevron_left", "chevron_right", "expand_more",
    "expand_less", "fullscreen_exit", "zoom_in", "zoom_out",
    "visibility_off", "attach_file", "play_arrow", "skip_next",
    "skip_previous", "record_voice_over", "spatial_audio",
    "co_present", "desktop_windows", "signal_cellular_alt",
})

UI_PHRASES = (
    "more options", "audio settings", "video settings",
    "turn on microphone", "turn off microphone", "turn on camera", "turn off camera",
    "turn on captions", "turn off captions",
    "present now", "share screen", "stop sharing", "raise hand", "lower hand",
    "leave call", "end call", "send a reaction", "host controls",
    "meeting details", "chat with everyone", "meeting tools", "call ends soon",
    "this call is open to anyone", "you are presenting",
    "caption settings", "font size", "font color",
    "backgrounds and effects",
    "jump to bottom", "scroll to bottom", "new messages",
    "view transcript",
)

_NAV_KEY = re.compile(r"\b(?:press|arrow|escape|tab)\b", re.IGNORECASE)
_NAV_ACTION = re.compile(r"\bto\s+(?:open|close|navigate|select|move|toggle)\b", re.IGNORECASE)
_CLOCK = re.compile(r"^\d{1,2}:\d{2}(?::\d{2})?\s*(?:AM|PM)?$", re.IGNORECASE)
_CLOCK_ANY = re.compile(r"\b\d{1,2}:\d{2}\s*(?:AM|PM)\b", re.IGNORECASE)
_MEETING_ID = re.compile(r"\b[a-z]{3}-[a-z]{4}-[a-z]{3}\b", re.IGNORECASE)
_MEETING_ID_FULL = re.compile(r"^[a-z]{3}-[a-z]{4}-[a-z]{3}$", re.IGNORECASE)
_URL = re.compile(r"https?://\S+", re.IGNORECASE)
_BARE_URL = re.compile(r"^https?://\S+$", re.IGNORECASE)
_SHORTCUT = re.compile(r"^\(?(?:ctrl|shift|alt|cmd)\s*\+", re.IGNORECASE)
_SHORTCUT_ANY = re.compile(r"\(?(?:ctrl|shift|alt|cmd)\s*\+\s*\w+\)?", re.IGNORECASE)
_SENTENCE_PUNCT = re.compile(r"[.!?;]")


def _is_ligature(word: str) -> bool:
    return "_" in word and word.lower() in ICON_LIGATURES


def _ui_phrase_hits(lower: str) -> int:
    return sum(1 for p in UI_PHRASES if p in lower)


def looks_like_captions(text: Optional[str]) -> bool:
    """Validity filter shared by discovery and extraction: False for UI chrome."""
    if not text:
        return False
    trimmed = text.strip()
    if not trimmed:
        return False
    lower = trimmed.lower()
    words = trimmed.split()

    ligatures = sum(1 for w in words if _is_ligature(w))
    if ligatures >= 3:
        return False
    if ligatures and ligatures == len(words):
        return False
    if len(words) > 2 and ligatures / len(words) > 0.5:
        return False

    if _NAV_KEY.search(lower) and _NAV_ACTION.search(lower):
        return False
    if _CLOCK.match(trimmed) or _BARE_URL.match(trimmed) or _SHORTCUT.match(trimmed):
        return False
    if _MEETING_ID.search(trimmed) and len(words) < 5:
        return False
    if lower in UI_PHRASES or _ui_phrase_hits(lower) >= 2:
        return False

    if len(words) > 5:
        avg = sum(len(w) for w in words) / len(words)
        if avg < 2:
            return False
    return True


def is_ui_text(text: Optional[str]) -> bool:
    """Short label-level check: button captions, clocks, meeting codes, links."""
    if not text:
        return True
    t = text.strip()
    if not t:
        return True
    if _is_ligature(t):
        return True
    if _ui_phrase_hits(t.lower()):
        return True
    return bool(_BARE_URL.match(t) or _CLOCK.match(t) or _MEETING_ID_FULL.match(t) or _SHORTCUT.match(t))


def clean_text(text: Optional[str]) -> str:
    """Strip ligatures, clocks, meeting codes, URLs and shortcut hints; collapse whitespace."""
    if not text:
        return ""
    out = " ".join(w for w in text.split() if not _is_ligature(w))
    out = _CLOCK_ANY.sub("", out)
    out = _MEETING_ID.sub("", out)
    out = _URL.sub("", out)
    out = _SHORTCUT_ANY.sub("", out)
    return re.sub(r"\s{2,}", " ", out).strip()


class SpeakerRegistry:
    """Speaker labels seen in this session. A known label is always a label."""

    def __init__(self) -> None:
        self._known: set[str] = set()

    def __contains__(self, name: str) -> bool:
        return name in self._known

    def __len__(self) -> int:
        return len(self._known)

    def remember(self, name: str) -> None:
        name = (name or "").strip()
        if name:
            self._known.add(name)

    def clear(self) -> None:
        self._known.clear()


def is_likely_name(text: Optional[str], speakers: Optional[SpeakerRegistry] = None) -> bool:
    """Short (<= 4 words, <= 40 chars), no sentence punctuation, not UI text."""
    if not text:
        return False
    t = text.strip()
    if not t:
        return False
    if speakers is not None and t in speakers:
        return True
    if len(t) > 40 or _SENTENCE_PUNCT.search(t):
        return False
    if not 1 <= len(t.split()) <= 4:
        return False
    return not is_ui_text(t)


def looks_like_speaker_label(
    text: Optional[str],
    node: Optional[PageNode] = None,
    speakers: Optional[SpeakerRegistry] = None,
) -> bool:
    """Leaf-node variant of is_likely_name: also rejects nodes with many siblings (word spans)."""
    if not text:
        return False
    t = text.strip()
    if speakers is not None and t in speakers:
        return True
    if not is_likely_name(t):
        return False
    if node is not None and node.parent is not None and len(node.parent.element_children) > 5:
        return False
    words = t.split()
    if len(words) == 1:
        return len(t) <= 20 and "," not in t
    return True
