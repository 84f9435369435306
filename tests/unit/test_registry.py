"""Tests for GatewayRegistry and building gateways from config."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from tests.fixtures.gateways import FakeGateway
from verdict.config.schema import ProviderConfig, VerdictConfig
from verdict.core.errors import ProviderNotConfiguredError
from verdict.providers.base import DEFAULT_PRICING, ProviderId
from verdict.providers.google import GeminiGateway
from verdict.providers.openai_compat import OpenAICompatibleGateway
from verdict.providers.registry import GatewayRegistry, build_registry, pricing_for

# ── GatewayRegistry ──────────────────────────────────────────────


class TestGatewayRegistry:
    def test_register_and_get(self) -> None:
        registry = GatewayRegistry()
        gateway = FakeGateway(ProviderId.GEMINI)
        registry.register(gateway)
        assert registry.get(ProviderId.GEMINI) is gateway
        assert registry.get("gemini") is gateway

    def test_duplicate_rejected(self) -> None:
        registry = GatewayRegistry()
        registry.register(FakeGateway(ProviderId.OPENAI))
        with pytest.raises(ValueError, match="already registered: openai"):
            registry.register(FakeGateway(ProviderId.OPENAI))

    def test_get_unknown(self) -> None:
        with pytest.raises(ProviderNotConfiguredError, match=r"\[gemini\]"):
            GatewayRegistry().get(ProviderId.GEMINI)

    def test_get_invalid_name(self) -> None:
        with pytest.raises(ProviderNotConfiguredError):
            GatewayRegistry().get("mistral")

    def test_canonical_order(self) -> None:
        registry = GatewayRegistry()
        for pid in (ProviderId.OPENROUTER, ProviderId.OPENAI, ProviderId.GEMINI):
            registry.register(FakeGateway(pid))
        expected = [ProviderId.OPENAI, ProviderId.GEMINI, ProviderId.OPENROUTER]
        assert registry.provider_ids == expected
        assert [g.provider_id for g in registry] == expected

    def test_contains_and_len(self) -> None:
        registry = GatewayRegistry()
        registry.register(FakeGateway(ProviderId.OPENAI))
        assert ProviderId.OPENAI in registry
        assert "openai" in registry
        assert "gemini" not in registry
        assert "mistral" not in registry
        assert len(registry) == 1


# ── pricing_for ──────────────────────────────────────────────────


class TestPricingFor:
    def test_defaults(self) -> None:
        assert pricing_for(ProviderId.OPENAI, ProviderConfig()) == (
            DEFAULT_PRICING[ProviderId.OPENAI]
        )

    def test_partial_override(self) -> None:
        pricing = pricing_for(ProviderId.OPENAI, ProviderConfig(input_cost_per_mtok=9))
        assert pricing.input_cost_per_mtok == 9
        assert pricing.output_cost_per_mtok == (
            DEFAULT_PRICING[ProviderId.OPENAI].output_cost_per_mtok
        )


# ── build_registry ───────────────────────────────────────────────


class TestBuildRegistry:
    def test_only_keyed_providers(self) -> None:
        config = VerdictConfig(
            providers={
                "openai": ProviderConfig(api_key="sk-1"),
                "gemini": ProviderConfig(api_key="g-1"),
                "perplexity": ProviderConfig(),
                "openrouter": ProviderConfig(api_key="or-1", enabled=False),
            }
        )
        with (
            patch("verdict.providers.openai_compat.openai.AsyncOpenAI"),
            patch("verdict.providers.google.genai.Client"),
        ):
            registry = build_registry(config)
        assert registry.provider_ids == [ProviderId.OPENAI, ProviderId.GEMINI]
        assert isinstance(registry.get("openai"), OpenAICompatibleGateway)
        assert isinstance(registry.get("gemini"), GeminiGateway)

    def test_config_flows_into_gateways(self) -> None:
        config = VerdictConfig(
            providers={
                "perplexity": ProviderConfig(
                    api_key="pk", model="sonar-pro", output_cost_per_mtok=1.5
                )
            }
        )
        config.pipeline.timeout_seconds = 3.0
        with patch("verdict.providers.openai_compat.openai.AsyncOpenAI") as ctor:
            registry = build_registry(config)
        gateway = registry.get("perplexity")
        assert gateway.default_model == "sonar-pro"
        assert isinstance(gateway, OpenAICompatibleGateway)
        assert gateway.pricing.output_cost_per_mtok == 1.5
        assert ctor.call_args.kwargs["base_url"] == "https://api.perplexity.ai"

    def test_empty_when_no_keys(self) -> None:
        assert len(build_registry(VerdictConfig())) == 0
