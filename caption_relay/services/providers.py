"""
LLM providers used for correction (single completion) and assist (token stream).

- openai: Chat Completions API
- anthropic: Messages API
- cloudflare: Workers AI run endpoint

Streaming uses server-sent events: lines "data: {...}", terminated by "data: [DONE]"
(or the end of the body). Chunks that are not valid JSON or lack a token are skipped.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional

import httpx

from caption_relay.config import Settings, get_settings

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Provider call failed. message is the API's human-readable error when it sent one."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(resp: httpx.Response) -> str:
    """Pull {"error": {"message"}} (OpenAI/Anthropic) or {"errors": [{"message"}]} (Cloudflare)."""
    try:
        data = resp.json()
    except (json.JSONDecodeError, ValueError):
        data = None
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        errors = data.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict) and errors[0].get("message"):
            return str(errors[0]["message"])
    return f"API {resp.status_code}"


async def iter_sse_data(resp: httpx.Response) -> AsyncIterator[str]:
    """Yield the payload of each 'data:' line until [DONE]."""
    async for line in resp.aiter_lines():
        t = line.strip()
        if not t.startswith("data:"):
            continue
        data = t[5:].strip()
        if data == "[DONE]":
            return
        if data:
            yield data


class AIProvider(ABC):
    name: str = "base"

    def __init__(
        self,
        model: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.model = model
        self.max_tokens = max_tokens if max_tokens is not None else settings.AI_MAX_TOKENS
        self.temperature = temperature if temperature is not None else settings.AI_TEMPERATURE
        self._timeout = timeout if timeout is not None else settings.AI_TIMEOUT_SEC
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    @abstractmethod
    def _url(self) -> str:
        ...

    @abstractmethod
    def _headers(self) -> dict[str, str]:
        ...

    @abstractmethod
    def _payload(self, system: str, user: str, stream: bool) -> dict[str, Any]:
        ...

    @abstractmethod
    def _completion_text(self, data: dict[str, Any]) -> str:
        ...

    @abstractmethod
    def _chunk_token(self, chunk: dict[str, Any]) -> Optional[str]:
        ...

    async def complete(self, system: str, user: str) -> str:
        """One-shot completion. Raises ProviderError."""
        logger.debug("LLM request to %s: model=%s, user_len=%d", self.name, self.model, len(user))
        try:
            async with self._client() as client:
                resp = await client.post(self._url(), json=self._payload(system, user, False), headers=self._headers())
                if resp.status_code >= 400:
                    raise ProviderError(_error_message(resp), resp.status_code)
                data = resp.json()
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name} request failed: {e}") from e
        except (json.JSONDecodeError, ValueError) as e:
            raise ProviderError(f"{self.name} returned invalid JSON") from e
        try:
            return (self._completion_text(data) or "").strip()
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"{self.name} returned an unexpected response") from e

    async def stream(self, system: str, user: str) -> AsyncIterator[str]:
        """Yield response tokens as they arrive. Raises ProviderError before or during the stream."""
        logger.debug("LLM stream to %s: model=%s, user_len=%d", self.name, self.model, len(user))
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", self._url(), json=self._payload(system, user, True), headers=self._headers()
                ) as resp:
                    if resp.status_code >= 400:
                        await resp.aread()
                        raise ProviderError(_error_message(resp), resp.status_code)
                    async for data in iter_sse_data(resp):
                        try:
                            chunk = json.loads(data)
                        except json.JSONDecodeError:
                            logger.debug("Skipping malformed stream chunk: %r", data[:80])
                            continue
                        if not isinstance(chunk, dict):
                            continue
                        try:
                            token = self._chunk_token(chunk)
                        except (KeyError, IndexError, TypeError):
                            token = None
                        if token:
                            yield token
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name} stream failed: {e}") from e


class OpenAIProvider(AIProvider):
    name = "openai"

    def __init__(self, api_key: str, model: Optional[str] = None, base_url: Optional[str] = None, **kwargs) -> None:
        settings = get_settings()
        super().__init__(model or settings.OPENAI_MODEL, **kwargs)
        self._api_key = api_key
        self._base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")

    def _url(self) -> str:
        return f"{self._base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}

    def _payload(self, system: str, user: str, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if stream:
            payload["stream"] = True
        return payload

    def _completion_text(self, data: dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]

    def _chunk_token(self, chunk: dict[str, Any]) -> Optional[str]:
        choices = chunk.get("choices") or []
        if not choices:
            return None
        return (choices[0].get("delta") or {}).get("content")


class AnthropicProvider(AIProvider):
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        version: Optional[str] = None,
        **kwargs,
    ) -> None:
        settings = get_settings()
        super().__init__(model or settings.ANTHROPIC_MODEL, **kwargs)
        self._api_key = api_key
        self._base_url = (base_url or settings.ANTHROPIC_BASE_URL).rstrip("/")
        self._version = version or settings.ANTHROPIC_VERSION

    def _url(self) -> str:
        return f"{self._base_url}/messages"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": self._version,
            "Content-Type": "application/json",
        }

    def _payload(self, system: str, user: str, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": user}],
        }
        if stream:
            payload["stream"] = True
        return payload

    def _completion_text(self, data: dict[str, Any]) -> str:
        return "".join(b.get("text", "") for b in data["content"] if b.get("type", "text") == "text")

    def _chunk_token(self, chunk: dict[str, Any]) -> Optional[str]:
        if chunk.get("type") != "content_block_delta":
            return None
        return (chunk.get("delta") or {}).get("text")


class CloudflareProvider(AIProvider):
    name = "cloudflare"

    def __init__(self, account_id: str, api_token: str, model: Optional[str] = None, **kwargs) -> None:
        settings = get_settings()
        super().__init__(model or settings.CLOUDFLARE_MODEL, **kwargs)
        self._account_id = account_id
        self._api_token = api_token

    def _url(self) -> str:
        return f"https://api.cloudflare.com/client/v4/accounts/{self._account_id}/ai/run/{self.model}"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_token}", "Content-Type": "application/json"}

    def _payload(self, system: str, user: str, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if stream:
            payload["stream"] = True
        return payload

    def _completion_text(self, data: dict[str, Any]) -> str:
        # Workers AI returns { "result": { "response": "..." } } or direct { "response": "..." }
        result = data.get("result", data)
        if isinstance(result, dict):
            return result.get("response", "") or ""
        if isinstance(result, str):
            return result
        return ""

    def _chunk_token(self, chunk: dict[str, Any]) -> Optional[str]:
        return chunk.get("response")


def create_provider(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[AIProvider]:
    """Provider selected by AI_PROVIDER, or None when its credentials are not configured."""
    settings = settings or get_settings()
    kind = settings.AI_PROVIDER
    if kind == "anthropic":
        key = (settings.ANTHROPIC_API_KEY or "").strip()
        return AnthropicProvider(key, transport=transport) if key else None
    if kind == "cloudflare":
        account_id = (settings.CLOUDFLARE_ACCOUNT_ID or "").strip()
        token = (settings.CLOUDFLARE_API_TOKEN or "").strip()
        if not account_id or not token:
            return None
        return CloudflareProvider(account_id, token, transport=transport)
    key = (settings.OPENAI_API_KEY or "").strip()
    return OpenAIProvider(key, transport=transport) if key else None
