# src/llm/adapters/openai_adapter.py — v1
"""OpenAI chat-completions adapter implementing BaseGenerationClient.

Uses the official openai SDK in JSON mode. SDK-level retries are disabled;
retrying is owned by llm.retry.with_retry.
"""

from __future__ import annotations

import time
from typing import Any

from protoscope.llm.base_client import BaseGenerationClient
from protoscope.llm.models import GenerationResponse
from protoscope.llm.retry import BackoffPolicy, with_retry


class OpenAIAdapter(BaseGenerationClient):
    """OpenAI GPT generation adapter."""

    def __init__(
        self,
        model: str = "gpt-4-turbo",
        api_key: str = "",
        base_url: str = "",
        timeout_s: float = 60.0,
        policy: BackoffPolicy | None = None,
        json_mode: bool = True,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url or None
        self._timeout_s = timeout_s
        self._policy = policy
        self._json_mode = json_mode
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

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ) -> GenerationResponse:
        client = self._get_client()
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if self._json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        t0 = time.monotonic()
        resp = await with_retry(
            client.chat.completions.create,
            label=f"{self.provider_name}:{self._model}",
            policy=self._policy,
            **kwargs,
        )
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        usage = resp.usage
        return GenerationResponse(
            content=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider=self.provider_name,
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "openai"
