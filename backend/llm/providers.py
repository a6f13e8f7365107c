"""Provider abstraction for the optional AI analysis pass.

Supports five backends behind one interface:
  - Groq, OpenAI and LM Studio (OpenAI chat-completions format)
  - Anthropic (messages format)
  - Ollama (local chat format)

Providers only ever receive a truncated excerpt of the content.  None of
them may log request or response bodies.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from llm.prompts import ANALYSIS_PROMPT

logger = logging.getLogger(__name__)

FORMAT_OPENAI = "openai"
FORMAT_ANTHROPIC = "anthropic"
FORMAT_OLLAMA = "ollama"

ANALYSIS_MAX_TOKENS = 1024


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class AnalysisProvider(ABC):
    """Abstract base class for all analysis providers."""

    provider_name: str = "base"
    request_format: str = FORMAT_OPENAI
    default_endpoint: str = ""
    auth_header: str | None = None
    auth_prefix: str = ""

    def __init__(
        self,
        model: str,
        *,
        endpoint: str | None = None,
        api_key: str | None = None,
    ) -> None:
        self._model = model
        self._endpoint = endpoint or self.default_endpoint
        self._api_key = api_key

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self._model!r}, endpoint={self._endpoint!r})"

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_header and self._api_key:
            headers[self.auth_header] = self.auth_prefix + self._api_key
        return headers

    @abstractmethod
    def format_request(self, content: str) -> dict[str, Any]:
        """Build the provider-specific request body for *content*."""
        ...

    @abstractmethod
    def extract_text(self, data: dict[str, Any]) -> str:
        """Pull the completion text out of a decoded response body."""
        ...

    async def complete(
        self,
        content: str,
        *,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> str:
        """POST one analysis request and return the raw completion text.

        Raises on transport errors, timeouts and non-2xx responses; the
        caller decides how failures are reported.
        """
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(
                self._endpoint,
                headers=self.headers(),
                json=self.format_request(content),
            )
            response.raise_for_status()
            return self.extract_text(response.json())


# ---------------------------------------------------------------------------
# OpenAI-compatible (OpenAI, Groq, LM Studio)
# ---------------------------------------------------------------------------

class OpenAICompatibleProvider(AnalysisProvider):
    """Chat-completions API as served by OpenAI and compatible hosts."""

    request_format = FORMAT_OPENAI

    def format_request(self, content: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": ANALYSIS_PROMPT},
                {"role": "user", "content": content},
            ],
            "temperature": 0,
            "max_tokens": ANALYSIS_MAX_TOKENS,
        }

    def extract_text(self, data: dict[str, Any]) -> str:
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            return ""


class OpenAIProvider(OpenAICompatibleProvider):
    provider_name = "openai"
    default_endpoint = "https://api.openai.com/v1/chat/completions"
    auth_header = "Authorization"
    auth_prefix = "Bearer "


class GroqProvider(OpenAICompatibleProvider):
    provider_name = "groq"
    default_endpoint = "https://api.groq.com/openai/v1/chat/completions"
    auth_header = "Authorization"
    auth_prefix = "Bearer "


class LMStudioProvider(OpenAICompatibleProvider):
    """LM Studio's local server; no authentication."""

    provider_name = "lmstudio"
    default_endpoint = "http://localhost:1234/v1/chat/completions"


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------

class AnthropicProvider(AnalysisProvider):
    provider_name = "anthropic"
    request_format = FORMAT_ANTHROPIC
    default_endpoint = "https://api.anthropic.com/v1/messages"
    auth_header = "x-api-key"

    def headers(self) -> dict[str, str]:
        headers = super().headers()
        headers["anthropic-version"] = "2023-06-01"
        return headers

    def format_request(self, content: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "system": ANALYSIS_PROMPT,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": ANALYSIS_MAX_TOKENS,
            "temperature": 0,
        }

    def extract_text(self, data: dict[str, Any]) -> str:
        for block in data.get("content") or []:
            if isinstance(block, dict) and block.get("type", "text") == "text":
                return block.get("text") or ""
        return ""


# ---------------------------------------------------------------------------
# Ollama (local)
# ---------------------------------------------------------------------------

class OllamaProvider(AnalysisProvider):
    """Ollama running locally; no data leaves the machine."""

    provider_name = "ollama"
    request_format = FORMAT_OLLAMA
    default_endpoint = "http://localhost:11434/api/chat"

    def format_request(self, content: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": ANALYSIS_PROMPT},
                {"role": "user", "content": content},
            ],
            "stream": False,
            "options": {"temperature": 0},
        }

    def extract_text(self, data: dict[str, Any]) -> str:
        message = data.get("message") or {}
        return message.get("content") or ""


# ---------------------------------------------------------------------------
# Registry and factory
# ---------------------------------------------------------------------------

PROVIDERS: dict[str, type[AnalysisProvider]] = {
    cls.provider_name: cls
    for cls in (
        GroqProvider,
        OpenAIProvider,
        AnthropicProvider,
        OllamaProvider,
        LMStudioProvider,
    )
}


def create_provider(
    provider: str,
    model: str,
    *,
    endpoint: str | None = None,
    api_key: str | None = None,
) -> AnalysisProvider:
    """Create an analysis provider instance.

    Parameters
    ----------
    provider : str
        One of the keys of ``PROVIDERS``.
    model : str
        Model identifier passed through to the provider.
    endpoint : str | None
        Override for the provider's default URL.
    """
    try:
        cls = PROVIDERS[provider]
    except KeyError:
        raise ValueError(f"Unknown provider: {provider}") from None
    return cls(model, endpoint=endpoint, api_key=api_key)
