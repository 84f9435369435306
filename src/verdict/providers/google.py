"""Google (Gemini) gateway."""

from __future__ import annotations

import time
from typing import Any

from google import genai
from google.genai import errors as genai_errors

from verdict.core.errors import (
    ModelNotFoundError,
    ProviderAuthError,
    ProviderError,
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

PROVIDER_ID = ProviderId.GEMINI


_CLIENT_ERROR_KEYWORDS: tuple[tuple[tuple[str, ...], type[ProviderError]], ...] = (
    (("api key", "auth", "permission"), ProviderAuthError),
    (("not found", "404"), ModelNotFoundError),
)


def _map_error(e: Exception) -> ProviderError:
    """Translate a google-genai exception.

    The SDK reports most failures as ``ClientError`` with the detail only
    in the message, so 4xx errors are told apart by keyword.  Anything
    else came from the server side.
    """
    text = str(e)
    if not isinstance(e, genai_errors.ClientError):
        return ProviderOverloadedError(PROVIDER_ID, text)
    lower = text.lower()
    for keywords, error_cls in _CLIENT_ERROR_KEYWORDS:
        if any(k in lower for k in keywords):
            return error_cls(PROVIDER_ID, text)
    if "429" in lower or "rate" in lower:
        return ProviderRateLimitError(PROVIDER_ID)
    return ProviderTimeoutError(PROVIDER_ID, text)


def _usage(response: Any) -> tuple[int, int]:
    meta = response.usage_metadata
    if meta is None:
        return 0, 0
    return meta.prompt_token_count or 0, meta.candidates_token_count or 0


class GeminiGateway:
    """Gateway for Google Gemini models."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        pricing: ModelPricing | None = None,
        timeout: float = 15.0,
        max_tokens: int = 1500,
        temperature: float = 0.3,
        client: genai.Client | None = None,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self._model = model or DEFAULT_MODELS[PROVIDER_ID]
        self._pricing = pricing or DEFAULT_PRICING[PROVIDER_ID]
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def provider_id(self) -> ProviderId:
        return PROVIDER_ID

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
            PROVIDER_ID,
            model_id,
            lambda: self._generate(system_prompt, user_prompt, model_id),
            timeout=self._timeout,
        )

    async def _generate(
        self, system_prompt: str, user_prompt: str, model_id: str
    ) -> ProviderResponse:
        # An empty system prompt must be omitted, not sent as ""
        config = genai.types.GenerateContentConfig(
            max_output_tokens=self._max_tokens,
            temperature=self._temperature,
            system_instruction=system_prompt or None,
        )

        started = time.monotonic()
        try:
            reply = await self._client.aio.models.generate_content(
                model=model_id,
                contents=[{"role": "user", "parts": [{"text": user_prompt}]}],
                config=config,
            )
        except genai_errors.APIError as e:
            raise _map_error(e) from e

        tokens_in, tokens_out = _usage(reply)
        return ProviderResponse(
            provider=PROVIDER_ID,
            model=model_id,
            content=reply.text or "",
            tokens_input=tokens_in,
            tokens_output=tokens_out,
            cost_usd=self._pricing.cost(tokens_in, tokens_out),
            latency_ms=(time.monotonic() - started) * 1000,
            status=ResponseStatus.SUCCESS,
        )
