# src/llm/models.py — v1
"""Service response types: RetrievalResponse, GenerationResponse."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RetrievalResponse(BaseModel):
    """Normalized response from a search/retrieval provider.

    citations may be bare URL strings or partial records; they are passed
    through untouched and canonicalised later by the citation normalizer.
    """

    content: str
    citations: list[Any] = Field(default_factory=list)
    tokens_used: int = 0
    model: str = ""
    provider: str = ""
    latency_ms: int = 0
    raw_response: Any = None


class GenerationResponse(BaseModel):
    """Normalized response from a text generation provider."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    provider: str = ""
    latency_ms: int = 0
    raw_response: Any = None

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens
