"""
AssistQueryEngine: on-demand AI help scoped to the recent conversation.

Commands:
- question: suggest follow-up questions
- simple-answer / detailed-answer: draft a reply
- clear: reset the session transcript

Every run produces start, zero or more token events, then exactly one end or
error event. Errors are reported as events; nothing is raised to the caller.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from caption_relay.config import get_settings
from caption_relay.services.documents import DocumentLibrary, ReferenceDocument
from caption_relay.services.prompts import (
    CLEARED_MESSAGE,
    FOCUS_INSTRUCTION,
    WAITING_MESSAGE,
    system_prompt_for,
)
from caption_relay.services.providers import AIProvider, ProviderError
from caption_relay.transcript.store import TranscriptStore

logger = logging.getLogger(__name__)


class AssistCommand(str, Enum):
    QUESTION = "question"
    SIMPLE_ANSWER = "simple-answer"
    DETAILED_ANSWER = "detailed-answer"
    CLEAR = "clear"


@dataclass(frozen=True)
class AssistEvent:
    type: str  # "start" | "token" | "end" | "error"
    mode: Optional[str] = None
    text: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type}
        if self.mode is not None:
            out["mode"] = self.mode
        if self.text is not None:
            out["text"] = self.text
        if self.message is not None:
            out["message"] = self.message
        return out


def format_documents(docs: list[ReferenceDocument], per_doc_max: int, total_max: int) -> str:
    """'[Doc i: name]' headed sections, each and all together capped in characters."""
    parts: list[str] = []
    used = 0
    for i, doc in enumerate(docs, start=1):
        remaining = total_max - used
        if remaining <= 0:
            break
        content = doc.content[: min(per_doc_max, remaining)]
        parts.append(f"[Doc {i}: {doc.name}]\n{content}")
        used += len(content)
    return "\n\n".join(parts)


class AssistQueryEngine:
    def __init__(
        self,
        store: TranscriptStore,
        documents: Optional[DocumentLibrary] = None,
        provider: Optional[AIProvider] = None,
        on_clear: Optional[Callable[[], Awaitable[object]]] = None,
        debounce: Optional[float] = None,
        context_blocks: Optional[int] = None,
        doc_max_chars: Optional[int] = None,
        docs_max_chars: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = get_settings()
        self._store = store
        self.documents = documents if documents is not None else DocumentLibrary()
        self.provider = provider
        self._on_clear = on_clear
        self._debounce = debounce if debounce is not None else settings.ASSIST_COMMAND_DEBOUNCE_SEC
        self._context_blocks = context_blocks if context_blocks is not None else settings.ASSIST_CONTEXT_BLOCKS
        self._doc_max = doc_max_chars if doc_max_chars is not None else settings.ASSIST_DOC_MAX_CHARS
        self._docs_max = docs_max_chars if docs_max_chars is not None else settings.ASSIST_DOCS_MAX_CHARS
        self._clock = clock
        self._last_command: Optional[AssistCommand] = None
        self._last_at = float("-inf")

    def accept(self, command: Union[AssistCommand, str]) -> bool:
        """False when the same command was accepted less than the debounce interval ago."""
        command = AssistCommand(command)
        now = self._clock()
        if command == self._last_command and now - self._last_at < self._debounce:
            logger.debug("Assist command %s dropped (debounce)", command.value)
            return False
        self._last_command = command
        self._last_at = now
        return True

    def build_request(self, command: Union[AssistCommand, str]) -> tuple[str, str]:
        """(system prompt, user message) for a streaming command."""
        command = AssistCommand(command)
        docs = format_documents(self.documents.documents(), self._doc_max, self._docs_max)
        system = system_prompt_for(command.value, with_documents=bool(docs))

        lines = []
        for entry in self._store.tail(self._context_blocks):
            lines.append(f"{entry['speaker']}: {entry['text']}" if entry["speaker"] else entry["text"])
        transcript = "\n".join(lines)

        prefix = f"=== REFERENCE DOCUMENTS ===\n{docs}\n\n" if docs else ""
        if not transcript.strip():
            return system, prefix + WAITING_MESSAGE
        user = prefix + f"=== LIVE CONVERSATION ===\n{transcript}\n\n" + FOCUS_INSTRUCTION
        return system, user

    async def events(self, command: Union[AssistCommand, str]) -> AsyncIterator[AssistEvent]:
        """Run one command and yield its events. Never raises."""
        try:
            command = AssistCommand(command)
        except ValueError:
            yield AssistEvent(type="start", mode=str(command))
            yield AssistEvent(type="error", message=f"Unknown command: {command}")
            return

        yield AssistEvent(type="start", mode=command.value)

        if command == AssistCommand.CLEAR:
            if self._on_clear is not None:
                try:
                    await self._on_clear()
                except Exception as e:
                    logger.warning("Clear command failed: %s", e)
                    yield AssistEvent(type="error", message=str(e) or "Clear failed")
                    return
            yield AssistEvent(type="token", text=CLEARED_MESSAGE)
            yield AssistEvent(type="end")
            return

        if self.provider is None:
            yield AssistEvent(type="error", message="No AI provider configured. Set an API key in the server settings.")
            return

        system, user = self.build_request(command)
        try:
            async for token in self.provider.stream(system, user):
                yield AssistEvent(type="token", text=token)
        except ProviderError as e:
            logger.warning("Assist %s failed: %s", command.value, e.message)
            yield AssistEvent(type="error", message=e.message)
            return
        except Exception as e:
            logger.exception("Assist %s failed: %s", command.value, e)
            yield AssistEvent(type="error", message=str(e) or type(e).__name__)
            return
        yield AssistEvent(type="end")

    async def run(
        self,
        command: Union[AssistCommand, str],
        emit: Callable[[AssistEvent], Awaitable[object]],
    ) -> bool:
        """Debounce, then push every event to emit. False when the command was dropped."""
        try:
            accepted = self.accept(command)
        except ValueError:
            accepted = True
        if not accepted:
            return False
        async for event in self.events(command):
            await emit(event)
        return True
