"""
LLM client abstraction for editorial decisions.

This module provides a unified interface over the providers the editor can
use (Anthropic, Google Gemini) plus a mock for tests.

Features:
- Async HTTP requests
- Retry logic with exponential backoff on rate limits and transport errors
- Mock client with scripted responses
"""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from ledger.core.config import settings
from ledger.core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Enums and Constants
# =============================================================================


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    MOCK = "mock"


ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class LLMMessage:
    """Represents a message in the conversation."""

    role: str  # "system", "user", or "assistant"
    content: str


@dataclass
class LLMResponse:
    """Response from an LLM API call."""

    content: str
    model: str
    provider: LLMProvider
    usage: dict[str, int] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def input_tokens(self) -> int:
        return self.usage.get("input_tokens", 0)

    @property
    def output_tokens(self) -> int:
        return self.usage.get("output_tokens", 0)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


# =============================================================================
# Exceptions
# =============================================================================


class LLMError(Exception):
    """Base exception for LLM client errors."""

    pass


class LLMRateLimitError(LLMError):
    """Raised when rate limited by API."""

    pass


class LLMAPIError(LLMError):
    """Raised when API returns an error response."""

    pass


class LLMParseError(LLMError):
    """Raised when response parsing fails."""

    pass


# =============================================================================
# Base LLM Client
# =============================================================================


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    def __init__(
        self,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize LLM client.

        Args:
            model: Model identifier
            timeout: Request timeout in seconds (defaults to settings)
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.model = model
        self.timeout = timeout or settings.llm_timeout_seconds
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "BaseLLMClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client."""
        if self._client is None:
            raise RuntimeError(
                "LLM client must be used as async context manager: "
                "async with Client() as client: ..."
            )
        return self._client

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.0,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation messages
            temperature: Sampling temperature (0.0 = deterministic)
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with generated content
        """
        pass

    @abstractmethod
    def provider(self) -> LLMProvider:
        pass

    async def _raise_for_status(self, response: httpx.Response, provider_name: str) -> None:
        """Map HTTP failures onto the LLMError hierarchy."""
        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            wait_time = int(retry_after) if retry_after and retry_after.isdigit() else 10
            logger.warning(f"{provider_name} rate limit hit", retry_after=wait_time)
            # Wait before raising to let tenacity retry
            await asyncio.sleep(wait_time)
            raise LLMRateLimitError(f"Rate limit exceeded, waited {wait_time}s")

        if response.status_code in (503, 529):
            logger.warning(f"{provider_name} service overloaded", status_code=response.status_code)
            await asyncio.sleep(30)
            raise LLMRateLimitError(f"Service overloaded ({response.status_code})")

        if response.status_code != 200:
            error_text = response.text[:500]
            logger.error(
                f"{provider_name} API error",
                status_code=response.status_code,
                response=error_text,
            )
            if response.status_code in (401, 403):
                raise LLMAPIError("API key invalid or lacks permissions")
            if response.status_code == 404:
                raise LLMAPIError(f"Model '{self.model}' not found")
            raise LLMAPIError(f"API returned status {response.status_code}: {error_text}")


# =============================================================================
# Anthropic Client
# =============================================================================


class AnthropicClient(BaseLLMClient):
    """Client for the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(model=model or settings.anthropic_model, timeout=timeout, transport=transport)
        self.api_key = api_key or settings.anthropic_api_key

        if not self.api_key:
            raise ValueError("Anthropic API key not configured. Set ANTHROPIC_API_KEY in .env")

    def provider(self) -> LLMProvider:
        return LLMProvider.ANTHROPIC

    @retry(
        retry=retry_if_exception_type((httpx.HTTPError, LLMRateLimitError)),
        stop=stop_after_attempt(5),
        wait=wait_random_exponential(multiplier=1, min=2, max=30),
    )
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.0,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """Generate completion using the Anthropic Messages API."""
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

        system_prompt = "\n\n".join(m.content for m in messages if m.role == "system")
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in messages
                if m.role in ("user", "assistant")
            ],
        }
        if system_prompt:
            payload["system"] = system_prompt

        logger.debug("Anthropic API request", model=self.model)

        response = await self.client.post(ANTHROPIC_API_URL, headers=headers, json=payload)
        await self._raise_for_status(response, "Anthropic")

        data = response.json()

        # {"content": [{"type": "text", "text": "..."}], "usage": {...}}
        content = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
        usage = data.get("usage", {})

        return LLMResponse(
            content=content,
            model=data.get("model", self.model),
            provider=LLMProvider.ANTHROPIC,
            usage={
                "input_tokens": usage.get("input_tokens", 0),
                "output_tokens": usage.get("output_tokens", 0),
            },
            raw_response=data,
        )


# =============================================================================
# Google Gemini Client
# =============================================================================


class GeminiClient(BaseLLMClient):
    """Client for Google Gemini API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(model=model or settings.gemini_model, timeout=timeout, transport=transport)
        self.api_key = api_key or settings.google_api_key

        if not self.api_key:
            raise ValueError("Google API key not configured. Set GOOGLE_API_KEY in .env")

    def provider(self) -> LLMProvider:
        return LLMProvider.GEMINI

    @retry(
        retry=retry_if_exception_type((httpx.HTTPError, LLMRateLimitError)),
        stop=stop_after_attempt(5),
        wait=wait_random_exponential(multiplier=1, min=2, max=30),
    )
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.0,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """Generate completion using Google Gemini API."""
        url = f"{GEMINI_API_URL}/{self.model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        contents = []
        system_instruction_text = None
        for msg in messages:
            if msg.role == "system":
                system_instruction_text = msg.content
            else:
                # Gemini expects "model" for assistant turns
                role = "model" if msg.role == "assistant" else "user"
                contents.append({"role": role, "parts": [{"text": msg.content}]})

        payload: dict[str, Any] = {
            "contents": contents,
            "generation_config": {
                "temperature": temperature,
                "max_output_tokens": max_tokens,
                "response_mime_type": "application/json",
            },
        }
        if system_instruction_text:
            payload["system_instruction"] = {"parts": [{"text": system_instruction_text}]}

        logger.debug("Gemini API request", model=self.model)

        response = await self.client.post(url, headers=headers, json=payload)
        await self._raise_for_status(response, "Gemini")

        data = response.json()

        # {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}
        content = ""
        candidates = data.get("candidates", [])
        if candidates:
            for part in candidates[0].get("content", {}).get("parts", []):
                if "text" in part:
                    content += part["text"]

        usage_metadata = data.get("usageMetadata", {})

        return LLMResponse(
            content=content,
            model=self.model,
            provider=LLMProvider.GEMINI,
            usage={
                "input_tokens": usage_metadata.get("promptTokenCount", 0),
                "output_tokens": usage_metadata.get("candidatesTokenCount", 0),
            },
            raw_response=data,
        )


# =============================================================================
# Mock Client (for testing)
# =============================================================================


class MockLLMClient(BaseLLMClient):
    """
    Mock LLM client for testing without API calls.

    Scripted responses are returned in order; the last one repeats once the
    script runs out. A response that is an Exception instance is raised
    instead of returned. Without a script, every item is skipped.
    """

    def __init__(self, model: str = "mock-model", timeout: float | None = None):
        super().__init__(model=model, timeout=timeout)
        self._responses: list[str | Exception] = []
        self._call_count = 0
        self.prompts: list[str] = []

    def provider(self) -> LLMProvider:
        return LLMProvider.MOCK

    def set_responses(self, responses: list[str | Exception]) -> None:
        """Set predefined responses for testing."""
        self._responses = responses
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.0,  # noqa: ARG002 - Required by interface
        max_tokens: int = 2048,  # noqa: ARG002 - Required by interface
    ) -> LLMResponse:
        """Return mock response."""
        self.prompts.extend(m.content for m in messages if m.role == "user")

        if self._responses:
            idx = min(self._call_count, len(self._responses) - 1)
            content = self._responses[idx]
        else:
            content = json.dumps({
                "decision": "SKIP",
                "reason": "Mock editor skips by default",
                "confidence": 1.0,
                "entities": [],
                "relationships": [],
                "cardSummary": "",
            })
        self._call_count += 1

        if isinstance(content, Exception):
            raise content

        return LLMResponse(
            content=content,
            model=self.model,
            provider=LLMProvider.MOCK,
            usage={"input_tokens": 100, "output_tokens": 50},
            raw_response={},
        )


# =============================================================================
# Factory Function
# =============================================================================


def get_llm_client(
    provider: str | LLMProvider | None = None,
    **kwargs,
) -> BaseLLMClient:
    """
    Factory function to get an LLM client.

    Args:
        provider: Provider name ("anthropic", "gemini", "mock"); defaults to
            settings.llm_provider
        **kwargs: Additional arguments passed to client constructor

    Example:
        async with get_llm_client("anthropic") as client:
            response = await client.complete(messages)
    """
    if provider is None:
        provider = settings.llm_provider

    if isinstance(provider, str):
        provider = LLMProvider(provider.lower())

    if provider == LLMProvider.ANTHROPIC:
        return AnthropicClient(**kwargs)
    elif provider == LLMProvider.GEMINI:
        return GeminiClient(**kwargs)
    elif provider == LLMProvider.MOCK:
        return MockLLMClient(**kwargs)
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")
