"""Tests for provider data classes and the guarded gateway call."""

from __future__ import annotations

import asyncio

import pytest

from verdict.core.errors import ProviderAuthError, ProviderTimeoutError
from verdict.providers.base import (
    ModelPricing,
    ProviderId,
    ProviderResponse,
    ResponseStatus,
    failed_response,
    guarded_call,
)

# ─── Data classes ─────────────────────────────────────────────


class TestProviderId:
    def test_canonical_order(self):
        assert [p.value for p in ProviderId] == [
            "openai",
            "gemini",
            "perplexity",
            "openrouter",
        ]


class TestModelPricing:
    def test_cost(self):
        pricing = ModelPricing(input_cost_per_mtok=3.0, output_cost_per_mtok=15.0)
        assert pricing.cost(1_000_000, 0) == pytest.approx(3.0)
        assert pricing.cost(1000, 500) == pytest.approx(0.0105)


class TestProviderResponse:
    def test_has_content(self):
        response = ProviderResponse(provider=ProviderId.OPENAI, model="m", content="x")
        assert response.has_content
        assert response.status == ResponseStatus.SUCCESS

    def test_whitespace_is_no_content(self):
        response = ProviderResponse(
            provider=ProviderId.OPENAI, model="m", content="  \n"
        )
        assert not response.has_content

    def test_total_tokens(self):
        response = ProviderResponse(
            provider=ProviderId.OPENAI,
            model="m",
            content="x",
            tokens_input=7,
            tokens_output=5,
        )
        assert response.total_tokens == 12

    def test_frozen(self):
        response = ProviderResponse(provider=ProviderId.OPENAI, model="m", content="x")
        with pytest.raises(AttributeError):
            response.content = "y"  # type: ignore[misc]

    def test_failed_response(self):
        response = failed_response(
            ProviderId.GEMINI, "m", status=ResponseStatus.TIMEOUT, error="AI_TIMEOUT"
        )
        assert response.content == ""
        assert response.total_tokens == 0
        assert response.cost_usd == 0.0
        assert response.error == "AI_TIMEOUT"


# ─── guarded_call ─────────────────────────────────────────────


class TestGuardedCall:
    async def test_passes_through_success(self):
        expected = ProviderResponse(provider=ProviderId.OPENAI, model="m", content="x")

        async def _call() -> ProviderResponse:
            return expected

        result = await guarded_call(ProviderId.OPENAI, "m", _call, timeout=1.0)
        assert result is expected

    async def test_deadline_expired(self):
        async def _call() -> ProviderResponse:
            await asyncio.sleep(1)
            raise AssertionError("unreachable")

        result = await guarded_call(ProviderId.OPENAI, "m", _call, timeout=0.01)
        assert result.status == ResponseStatus.TIMEOUT
        assert result.error == "AI_TIMEOUT"
        assert result.content == ""

    async def test_provider_timeout(self):
        async def _call() -> ProviderResponse:
            raise ProviderTimeoutError("openai", "slow")

        result = await guarded_call(ProviderId.OPENAI, "m", _call, timeout=1.0)
        assert result.status == ResponseStatus.TIMEOUT
        assert result.error == "[openai] slow"

    async def test_provider_error(self):
        async def _call() -> ProviderResponse:
            raise ProviderAuthError("openai", "bad key")

        result = await guarded_call(ProviderId.OPENAI, "m", _call, timeout=1.0)
        assert result.status == ResponseStatus.ERROR
        assert result.error == "[openai] bad key"

    async def test_unexpected_error(self):
        async def _call() -> ProviderResponse:
            raise ValueError("weird")

        result = await guarded_call(ProviderId.GEMINI, "m", _call, timeout=1.0)
        assert result.status == ResponseStatus.ERROR
        assert result.provider == ProviderId.GEMINI
        assert "weird" in (result.error or "")
