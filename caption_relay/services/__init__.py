"""Application services: AI providers, transcript correction, assist queries, reference documents."""
from caption_relay.services.assist import AssistCommand, AssistEvent, AssistQueryEngine
from caption_relay.services.correction import CorrectionSupervisor
from caption_relay.services.documents import DocumentLibrary, ReferenceDocument
from caption_relay.services.providers import AIProvider, ProviderError, create_provider

__all__ = [
    "AIProvider",
    "AssistCommand",
    "AssistEvent",
    "AssistQueryEngine",
    "CorrectionSupervisor",
    "DocumentLibrary",
    "ProviderError",
    "ReferenceDocument",
    "create_provider",
]
