"""Schemas for the session control, transcript and document endpoints."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ActivateRequest(BaseModel):
    """Request body for POST /api/session/activate. Omitted fields keep their current value."""

    source_lang: str | None = Field(None, description="Language spoken in the meeting, e.g. 'en'")
    target_lang: str | None = Field(None, description="Translation target language, e.g. 'th'")
    platform: str | None = Field(None, description="Force meet | teams | zoom | generic; None = detect from page URL")
    spelling_correction: bool | None = Field(None, description="Correct the newest block after each flush")


class StatusResponse(BaseModel):
    active: bool
    source_lang: str
    target_lang: str
    platform: str | None = None
    discovery: str = Field(..., description="searching | candidate_pending | attached")
    attached_via: str | None = None
    committed_blocks: int = 0
    visible_lines: int = 0
    spelling_correction: bool = True
    provider: str | None = None
    sinks: int | None = None


class TranscriptEntryOut(BaseModel):
    speaker: str
    text: str


class TranscriptResponse(BaseModel):
    """GET /api/transcript: entries plus the copy-ready text ('Speaker: text' blocks)."""

    entries: list[TranscriptEntryOut]
    text: str
    count: int


class DocumentIn(BaseModel):
    name: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, description="Plain text; binary formats are not parsed")


class DocumentOut(BaseModel):
    id: str
    name: str
    content: str
