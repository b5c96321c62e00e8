"""
Session metadata and its persistence across restarts.

STATE_DIR/session.json holds:
- "session": active flag, languages, platform, source/sink handles, spelling correction
- "transcript": the last PERSIST_TAIL_BLOCKS committed blocks

Handles name live connections (source page, translation sink). They are only
meaningful while that connection is open, so on load any handle that is not
registered in this process is cleared.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Optional

from caption_relay.config import get_settings
from caption_relay.transcript.checkpoint import STATE_FILENAME
from caption_relay.transcript.models import CommittedBlock

logger = logging.getLogger(__name__)


@dataclass
class SessionMetadata:
    active: bool = False
    source_lang: str = "en"
    target_lang: str = "th"
    platform: Optional[str] = None
    source_handle: Optional[str] = None
    sink_handle: Optional[str] = None
    spelling_correction: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionMetadata":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


class HandleRegistry:
    """Handles of connections that are open right now."""

    def __init__(self) -> None:
        self._live: set[str] = set()

    def register(self, handle: str) -> None:
        self._live.add(handle)

    def unregister(self, handle: str) -> None:
        self._live.discard(handle)

    def is_live(self, handle: Optional[str]) -> bool:
        return handle is not None and handle in self._live


def state_path(state_dir: Optional[str] = None) -> str:
    return os.path.join(state_dir or get_settings().STATE_DIR, STATE_FILENAME)


def build_state(metadata: SessionMetadata, blocks: list[CommittedBlock], tail: Optional[int] = None) -> dict[str, Any]:
    """Checkpoint payload: metadata + the newest `tail` blocks."""
    tail = tail if tail is not None else get_settings().PERSIST_TAIL_BLOCKS
    kept = blocks[-tail:] if tail > 0 else []
    return {
        "session": metadata.to_dict(),
        "transcript": [b.to_dict() for b in kept],
    }


def load_state(
    registry: Optional[HandleRegistry] = None,
    state_dir: Optional[str] = None,
) -> tuple[SessionMetadata, list[CommittedBlock]]:
    """Read the last checkpoint. Missing or unreadable file -> fresh metadata, empty transcript."""
    path = state_path(state_dir)
    if not os.path.isfile(path):
        return SessionMetadata(), []
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not load session state %s: %s", path, e)
        return SessionMetadata(), []
    if not isinstance(data, dict):
        return SessionMetadata(), []

    metadata = SessionMetadata.from_dict(data.get("session") or {})
    registry = registry or HandleRegistry()
    if metadata.source_handle and not registry.is_live(metadata.source_handle):
        metadata.source_handle = None
    if metadata.sink_handle and not registry.is_live(metadata.sink_handle):
        metadata.sink_handle = None

    blocks = []
    for item in data.get("transcript") or []:
        if isinstance(item, dict) and (item.get("text") or "").strip():
            blocks.append(CommittedBlock.from_dict(item))
    logger.info("Session state loaded from %s: %d blocks, active=%s", path, len(blocks), metadata.active)
    return metadata, blocks
