"""HTTP adapters for hosted model APIs.

Keys come from environment variables only. Requests go through httpx with
a truststore SSL context so corporate certificate stores are honoured.
"""

from __future__ import annotations

import logging
import os
import ssl
from typing import Any

import httpx
import truststore

from ai_git.errors import ProviderFailure
from ai_git.providers.base import Mode

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
MAX_OUTPUT_TOKENS = 1024


def _ssl_context() -> ssl.SSLContext:
    return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)


class BaseAPIAdapter:
    """Shared request plumbing for API providers."""

    provider_id: str = ""
    api_key_env: str = ""
    mode = Mode.API

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self._transport = transport

    def api_key(self) -> str:
        key = os.environ.get(self.api_key_env, "").strip()
        if not key:
            raise ProviderFailure(
                self.provider_id,
                f"{self.api_key_env} is not set.",
                suggestion=f"Export {self.api_key_env} with your API key.",
            )
        return key

    async def check_available(self) -> bool:
        return bool(os.environ.get(self.api_key_env, "").strip())

    def _client(self) -> httpx.AsyncClient:
        if self._transport is not None:
            return httpx.AsyncClient(transport=self._transport, timeout=self.timeout)
        return httpx.AsyncClient(verify=_ssl_context(), timeout=self.timeout)

    async def _post(self, url: str, headers: dict[str, str], payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            raise ProviderFailure(self.provider_id, f"request timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise ProviderFailure(self.provider_id, f"request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ProviderFailure(
                self.provider_id,
                f"API error ({response.status_code}): {response.text.strip()[:500]}",
            )
        return response.json()


class OpenAICompatibleAdapter(BaseAPIAdapter):
    """Chat Completions API (OpenAI and providers that mirror it)."""

    provider_id = "openai"
    api_key_env = "OPENAI_API_KEY"
    base_url = "https://api.openai.com/v1"

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key()}"}

    async def invoke(self, model: str, system_prompt: str, user_prompt: str) -> str:
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": MAX_OUTPUT_TOKENS,
        }
        data = await self._post(f"{self.base_url}/chat/completions", self.headers(), payload)
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderFailure(self.provider_id, "unexpected response shape") from exc


class OpenRouterAdapter(OpenAICompatibleAdapter):
    provider_id = "openrouter"
    api_key_env = "OPENROUTER_API_KEY"
    base_url = "https://openrouter.ai/api/v1"

    def headers(self) -> dict[str, str]:
        return {**super().headers(), "X-Title": "ai-git"}


class GoogleAIStudioAdapter(OpenAICompatibleAdapter):
    provider_id = "google-ai-studio"
    api_key_env = "GEMINI_API_KEY"
    base_url = "https://generativelanguage.googleapis.com/v1beta/openai"


class AnthropicAdapter(BaseAPIAdapter):
    """Anthropic Messages API."""

    provider_id = "anthropic"
    api_key_env = "ANTHROPIC_API_KEY"
    base_url = "https://api.anthropic.com/v1"
    api_version = "2023-06-01"

    async def invoke(self, model: str, system_prompt: str, user_prompt: str) -> str:
        headers = {"x-api-key": self.api_key(), "anthropic-version": self.api_version}
        payload = {
            "model": model,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
            "max_tokens": MAX_OUTPUT_TOKENS,
            "temperature": 0,
        }
        data = await self._post(f"{self.base_url}/messages", headers, payload)
        blocks = data.get("content") or []
        return "".join(block.get("text", "") for block in blocks if block.get("type") == "text")


__all__ = [
    "BaseAPIAdapter",
    "OpenAICompatibleAdapter",
    "OpenRouterAdapter",
    "GoogleAIStudioAdapter",
    "AnthropicAdapter",
]
