"""LLM client for chat completions and embeddings over an OpenAI-compatible API.

Security: Reads API key from environment only, never hardcoded.
Provides a deterministic fallback when no key is present, for development and tests.
"""

import hashlib
import json
import logging
import math
import re
from typing import Protocol

from openai import AsyncOpenAI

from backend.app.config import Settings, get_settings

logger = logging.getLogger(__name__)

STUB_EMBEDDING_DIM = 64


class LLMClient(Protocol):
    """Protocol for LLM client implementations."""

    async def complete(
        self,
        *,
        system: str | None,
        user: str,
        max_tokens: int = 8192,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> str:
        """Run a single chat completion.

        Args:
            system: Optional system prompt
            user: User message
            max_tokens: Completion token cap
            json_mode: Ask the provider for a JSON object response
            temperature: Sampling temperature (provider default when None)

        Returns:
            Completion text ("" when the provider returns nothing)
        """
        ...

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts, one vector per input, in order."""
        ...


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required)."""

    async def complete(
        self,
        *,
        system: str | None,
        user: str,
        max_tokens: int = 8192,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> str:
        """Generate deterministic stub output."""
        if json_mode:
            return json.dumps({"status": "passed", "issues": []})

        preview = user.strip().splitlines()[0][:120] if user.strip() else ""
        return (
            "# Draft\n\n"
            f"{preview}\n\n"
            "*This is a stub response generated without an AI provider.*"
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Hashed bag-of-words vectors, L2-normalized."""
        return [_hashed_embedding(text) for text in texts]


def _hashed_embedding(text: str) -> list[float]:
    vector = [0.0] * STUB_EMBEDDING_DIM
    for word in re.findall(r"\w+", text.lower()):
        bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % STUB_EMBEDDING_DIM
        vector[bucket] += 1.0
    norm = math.sqrt(sum(v * v for v in vector))
    return [v / norm for v in vector] if norm else vector


class OpenAIClient:
    """OpenAI-backed LLM client."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        model: str = "gpt-5",
        embedding_model: str = "text-embedding-3-small",
    ):
        """Initialize OpenAI client.

        Args:
            api_key: Provider API key (read from environment)
            base_url: OpenAI-compatible endpoint; None uses the public API
            model: Chat model name
            embedding_model: Embedding model name
        """
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.embedding_model = embedding_model

    async def complete(
        self,
        *,
        system: str | None,
        user: str,
        max_tokens: int = 8192,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> str:
        """Run a chat completion. Provider errors propagate to the caller."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})

        kwargs: dict[str, object] = {
            "model": self.model,
            "messages": messages,
            "max_completion_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await self.client.chat.completions.create(**kwargs)  # type: ignore[call-overload]
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed texts with the configured embedding model."""
        if not texts:
            return []
        response = await self.client.embeddings.create(
            model=self.embedding_model,
            input=texts,
            encoding_format="float",
        )
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


def build_llm_client(settings: Settings) -> LLMClient:
    """Pick the client implementation for the given settings.

    Returns:
        OpenAIClient if an API key is configured, DeterministicStubClient otherwise
    """
    api_key = settings.ai_integrations_openai_api_key

    if api_key:
        logger.info("Using OpenAI-compatible client")
        return OpenAIClient(
            api_key=api_key,
            base_url=settings.ai_integrations_openai_base_url,
            model=settings.openai_model,
            embedding_model=settings.openai_embedding_model,
        )

    logger.warning("No AI API key configured, using deterministic stub client")
    return DeterministicStubClient()


_client: LLMClient | None = None


async def get_llm_client() -> LLMClient:
    """FastAPI dependency returning the process-wide LLM client."""
    global _client
    if _client is None:
        _client = build_llm_client(get_settings())
    return _client
