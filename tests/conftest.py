"""Shared test fixtures for verdict."""

from __future__ import annotations

from typing import Any

import pytest

from verdict.config.schema import PipelineConfig
from verdict.providers.base import ProviderId, ProviderResponse
from verdict.providers.registry import GatewayRegistry


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Keep real config files and API keys out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("VERDICT_CONFIG", raising=False)
    for var in (
        "OPENAI_API_KEY",
        "GOOGLE_GEMINI_API_KEY",
        "PERPLEXITY_API_KEY",
        "OPENROUTER_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Pipeline settings with no retry delay."""
    return PipelineConfig(retry_delay=0.0)


@pytest.fixture
def make_response() -> Any:
    """Factory fixture for ProviderResponse with sensible defaults."""

    def _make(**overrides: Any) -> ProviderResponse:
        defaults: dict[str, Any] = {
            "provider": ProviderId.OPENAI,
            "model": "test-model",
            "content": "Test answer",
            "tokens_input": 10,
            "tokens_output": 20,
            "cost_usd": 0.001,
        }
        defaults.update(overrides)
        return ProviderResponse(**defaults)

    return _make


@pytest.fixture
def make_registry() -> Any:
    """Factory fixture building a GatewayRegistry from gateways."""

    def _make(*gateways: Any) -> GatewayRegistry:
        registry = GatewayRegistry()
        for gateway in gateways:
            registry.register(gateway)
        return registry

    return _make
