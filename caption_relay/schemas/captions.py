"""
Schemas for messages on /ws/source.

- page: serialized page snapshot (root node tree + mutation records since the last one)
- captionBatch: caption lines already extracted by a platform content script
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class CaptionIn(BaseModel):
    speaker: str = Field("", description="Speaker label; empty = unattributed")
    text: str = Field(..., description="Caption text as shown on screen")


class CaptionBatchMessage(BaseModel):
    """Every caption line visible right now, in screen order."""

    type: Literal["captionBatch"] = "captionBatch"
    platform: str | None = Field(None, description="meet | teams | zoom | generic")
    captions: list[CaptionIn] = Field(default_factory=list)


class ViewportIn(BaseModel):
    width: float = 0.0
    height: float = 0.0


class MutationIn(BaseModel):
    type: Literal["characterData", "childList"]
    target: str = Field(..., description="Id of the mutated node (text node for characterData)")
    added_text: bool = Field(False, description="childList only: an added node carried text")


class PageMessage(BaseModel):
    """Page snapshot. root is the node tree ({id, tag, attrs, rect, visible, children} or {id, text})."""

    type: Literal["page"] = "page"
    url: str = ""
    viewport: ViewportIn = Field(default_factory=ViewportIn)
    root: dict[str, Any]
    mutations: list[MutationIn] = Field(default_factory=list)
