"""
Transcript data types.

- CaptionObservation: one visible caption line at one scan tick. Recreated every tick.
- CommittedBlock: one permanent transcript entry. Speaker is fixed at creation;
  text changes only through a same-speaker tail merge or a gated correction.
- TranscriptEntry: one line of the rebuilt view (committed or provisional).
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class CaptionObservation:
    """One visible caption line. Empty speaker = unattributed."""

    speaker: str
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"speaker": self.speaker, "text": self.text}


@dataclass(eq=False)
class CommittedBlock:
    """
    Permanent transcript unit. timestamp is time.monotonic() at commit and
    committed_at the wall-clock time.time() of the same moment. Only
    committed_at is persisted: monotonic readings mean nothing in another
    process, so a restored block's timestamp is rebuilt from its age.
    """

    speaker: str
    text: str
    timestamp: float = field(default_factory=time.monotonic)
    committed_at: float = field(default_factory=time.time)

    def __setattr__(self, name: str, value) -> None:
        if name == "speaker" and "speaker" in self.__dict__:
            raise AttributeError("speaker of a committed block cannot change")
        super().__setattr__(name, value)

    def to_dict(self) -> dict:
        return {"speaker": self.speaker, "text": self.text, "committed_at": self.committed_at}

    @classmethod
    def from_dict(cls, data: dict) -> "CommittedBlock":
        now = time.time()
        try:
            committed_at = float(data.get("committed_at") or now)
        except (TypeError, ValueError):
            committed_at = now
        # Future wall-clock values (clock set back) count as age 0
        age = max(0.0, now - committed_at)
        return cls(
            speaker=str(data.get("speaker") or ""),
            text=str(data.get("text") or ""),
            timestamp=time.monotonic() - age,
            committed_at=committed_at,
        )


@dataclass
class TranscriptEntry:
    """One line of the externally visible transcript."""

    speaker: str
    text: str
    provisional: bool = False

    def to_dict(self) -> dict[str, str]:
        return {"speaker": self.speaker, "text": self.text}


class CommitOutcome(str, Enum):
    IGNORED = "ignored"
    REPLACED = "replaced"
    APPENDED = "appended"
