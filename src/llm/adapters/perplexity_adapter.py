# src/llm/adapters/perplexity_adapter.py — v1
"""Perplexity search adapter implementing BaseRetrievalClient.

Perplexity exposes an OpenAI-compatible chat-completions endpoint, so the
openai SDK is reused with a different base_url. Citations arrive as extra
response fields (``citations`` as URL strings, or ``search_results`` as
records) and are returned raw.
"""

from __future__ import annotations

import time
from typing import Any

from protoscope.llm.base_client import BaseRetrievalClient
from protoscope.llm.models import RetrievalResponse
from protoscope.llm.retry import BackoffPolicy, with_retry

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"


class PerplexityAdapter(BaseRetrievalClient):
    """Perplexity sonar retrieval adapter."""

    def __init__(
        self,
        model: str = "sonar-pro",
        api_key: str = "",
        base_url: str = PERPLEXITY_BASE_URL,
        timeout_s: float = 30.0,
        policy: BackoffPolicy | None = None,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url or PERPLEXITY_BASE_URL
        self._timeout_s = timeout_s
        self._policy = policy
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout_s,
                max_retries=0,
            )
        return self._client

    async def search(self, query: str) -> RetrievalResponse:
        client = self._get_client()

        t0 = time.monotonic()
        resp = await with_retry(
            client.chat.completions.create,
            label=f"{self.provider_name}:{self._model}",
            policy=self._policy,
            model=self._model,
            messages=[{"role": "user", "content": query}],
        )
        latency = int((time.monotonic() - t0) * 1000)

        usage = resp.usage
        content = resp.choices[0].message.content if resp.choices else ""
        return RetrievalResponse(
            content=content or "",
            citations=_extract_citations(resp),
            tokens_used=usage.total_tokens if usage else 0,
            model=self._model,
            provider=self.provider_name,
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "perplexity"


def _extract_citations(resp: Any) -> list[Any]:
    """Pull raw citations out of the provider-specific response fields."""
    citations = getattr(resp, "citations", None)
    if citations:
        return list(citations)

    results = getattr(resp, "search_results", None) or []
    extracted: list[Any] = []
    for item in results:
        if isinstance(item, dict):
            extracted.append(
                {
                    "url": item.get("url", ""),
                    "title": item.get("title", ""),
                    "publishedAt": item.get("date"),
                }
            )
        elif isinstance(item, str):
            extracted.append(item)
    return extracted
