# src/llm/base_client.py — v1
"""Abstract retrieval and generation client interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod

from protoscope.llm.models import GenerationResponse, RetrievalResponse


class BaseRetrievalClient(ABC):
    """Search/retrieval service: query in, content plus raw citations out."""

    @abstractmethod
    async def search(self, query: str) -> RetrievalResponse:
        """Run a search query. Must tolerate an empty citation list."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (perplexity, ...)."""


class BaseGenerationClient(ABC):
    """Generation service: system + user prompt in, text (expected JSON) out."""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ) -> GenerationResponse:
        """Text completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, ...)."""
