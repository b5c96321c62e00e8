"""Pydantic schemas for API requests, responses and WebSocket messages."""
from caption_relay.schemas.captions import CaptionBatchMessage, CaptionIn, PageMessage
from caption_relay.schemas.session import (
    ActivateRequest,
    DocumentIn,
    DocumentOut,
    StatusResponse,
    TranscriptEntryOut,
    TranscriptResponse,
)

__all__ = [
    "ActivateRequest",
    "CaptionBatchMessage",
    "CaptionIn",
    "DocumentIn",
    "DocumentOut",
    "PageMessage",
    "StatusResponse",
    "TranscriptEntryOut",
    "TranscriptResponse",
]
