"""OpenAI-compatible chat-completions gateway.

Serves OpenAI itself plus the vendors that expose the same API behind a
different base URL (Perplexity, OpenRouter). All three use the OpenAI SDK.
"""

from __future__ import annotations

import contextlib
import time
from typing import Any

import openai

from verdict.core.errors import (
    ModelNotFoundError,
    ProviderAuthError,
    ProviderOverloadedError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)
from verdict.providers.base import (
    DEFAULT_MODELS,
    DEFAULT_PRICING,
    ModelPricing,
    ProviderId,
    ProviderResponse,
    ResponseStatus,
    guarded_call,
)

BASE_URLS: dict[ProviderId, str | None] = {
    ProviderId.OPENAI: None,
    ProviderId.PERPLEXITY: "https://api.perplexity.ai",
    ProviderId.OPENROUTER: "https://openrouter.ai/api/v1",
}

# OpenRouter attributes traffic to the calling app through these headers.
_OPENROUTER_HEADERS = {
    "HTTP-Referer": "http://localhost:3000",
    "X-Title": "Multi-AI Consensus System",
}


def _map_error(provider_id: str, e: openai.APIError) -> Exception:
    """Map OpenAI SDK errors to the verdict error hierarchy."""
    if isinstance(e, openai.AuthenticationError):
        return ProviderAuthError(provider_id, str(e))
    if isinstance(e, openai.RateLimitError):
        retry_after = None
        if hasattr(e, "response") and e.response is not None:
            raw = e.response.headers.get("retry-after")
            if raw is not None:
                with contextlib.suppress(ValueError):
                    retry_after = float(raw)
        return ProviderRateLimitError(provider_id, retry_after=retry_after)
    if isinstance(e, openai.APITimeoutError):
        return ProviderTimeoutError(provider_id, str(e))
    if isinstance(e, openai.InternalServerError):
        return ProviderOverloadedError(provider_id, str(e))
    if isinstance(e, openai.NotFoundError):
        return ModelNotFoundError(provider_id, str(e))
    # Fallback for unknown API errors
    return ProviderOverloadedError(provider_id, str(e))


def _build_messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
    """Chat messages for one prompt pair; an empty system prompt is omitted."""
    messages: list[dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})
    return messages


class OpenAICompatibleGateway:
    """Gateway for OpenAI, Perplexity and OpenRouter chat completions."""

    def __init__(
        self,
        provider_id: ProviderId,
        api_key: str | None = None,
        *,
        model: str | None = None,
        base_url: str | None = None,
        pricing: ModelPricing | None = None,
        timeout: float = 15.0,
        max_tokens: int = 1500,
        temperature: float = 0.3,
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self._provider_id = provider_id
        self._model = model or DEFAULT_MODELS[provider_id]
        self._pricing = pricing or DEFAULT_PRICING[provider_id]
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._temperature = temperature

        if client is not None:
            self._client = client
        else:
            kwargs: dict[str, Any] = {}
            url = base_url or BASE_URLS.get(provider_id)
            if url is not None:
                kwargs["base_url"] = url
            if api_key is not None:
                kwargs["api_key"] = api_key
            if provider_id == ProviderId.OPENROUTER:
                kwargs["default_headers"] = _OPENROUTER_HEADERS
            self._client = openai.AsyncOpenAI(**kwargs)

    @property
    def provider_id(self) -> ProviderId:
        return self._provider_id

    @property
    def default_model(self) -> str:
        return self._model

    @property
    def pricing(self) -> ModelPricing:
        return self._pricing

    async def invoke(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str | None = None,
    ) -> ProviderResponse:
        model_id = model or self._model
        return await guarded_call(
            self._provider_id,
            model_id,
            lambda: self._complete(system_prompt, user_prompt, model_id),
            timeout=self._timeout,
        )

    async def _complete(
        self, system_prompt: str, user_prompt: str, model_id: str
    ) -> ProviderResponse:
        start = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=model_id,
                messages=_build_messages(system_prompt, user_prompt),
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except openai.APIError as e:
            raise _map_error(self._provider_id, e) from e

        latency_ms = (time.monotonic() - start) * 1000

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        input_tokens = 0
        output_tokens = 0
        if response.usage:
            input_tokens = response.usage.prompt_tokens or 0
            output_tokens = response.usage.completion_tokens or 0

        return ProviderResponse(
            provider=self._provider_id,
            model=model_id,
            content=content,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=self._pricing.cost(input_tokens, output_tokens),
            latency_ms=latency_ms,
            status=ResponseStatus.SUCCESS,
        )
