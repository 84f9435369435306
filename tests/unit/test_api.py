"""Tests for the REST API: consensus route, health checks, app factory."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from tests.fixtures.gateways import FakeGateway
from tests.fixtures.responses import MEDIUM_75, STRUCTURED_UNDETERMINED
from verdict.api.app import create_app
from verdict.config.schema import VerdictConfig
from verdict.core.errors import PipelineError
from verdict.providers.base import ProviderId


@pytest.fixture
def config() -> VerdictConfig:
    cfg = VerdictConfig()
    cfg.pipeline.retry_delay = 0.0
    return cfg


def _client(config: VerdictConfig, registry: Any) -> TestClient:
    app = create_app(config)
    app.state.gateways = registry
    return TestClient(app)


# ── App factory ──────────────────────────────────────────────────


class TestCreateApp:
    def test_lifespan_builds_registry(self, config: VerdictConfig) -> None:
        app = create_app(config)
        assert app.state.gateways is None
        with TestClient(app):
            assert len(app.state.gateways) == 0

    def test_lifespan_keeps_injected_registry(
        self, config: VerdictConfig, make_registry: Any
    ) -> None:
        registry = make_registry(FakeGateway(ProviderId.OPENAI))
        app = create_app(config)
        app.state.gateways = registry
        with TestClient(app):
            assert app.state.gateways is registry

    def test_cors_only_when_origins_configured(
        self, config: VerdictConfig, make_registry: Any
    ) -> None:
        headers = {"Origin": "http://localhost:3000"}
        with _client(config, make_registry()) as client:
            resp = client.get("/api/health", headers=headers)
        assert "access-control-allow-origin" not in resp.headers

        config.api.cors_origins = ["http://localhost:3000"]
        with _client(config, make_registry()) as client:
            resp = client.get("/api/health", headers=headers)
        assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"


# ── POST /api/consensus ──────────────────────────────────────────


class TestConsensusRoute:
    def test_success(self, config: VerdictConfig, make_registry: Any) -> None:
        registry = make_registry(
            FakeGateway(ProviderId.OPENAI, answer=MEDIUM_75),
            FakeGateway(ProviderId.GEMINI, answer=STRUCTURED_UNDETERMINED),
        )
        with _client(config, registry) as client:
            resp = client.post(
                "/api/consensus",
                json={"prompt": "Who said it?", "correlation_id": "req-7"},
            )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message_id"] == "req-7"
        assert data["consensus"]["winner"] == "gemini"
        assert data["consensus"]["refinement_applied"] is False
        assert data["refined_responses"] is None
        assert len(data["initial_responses"]) == 2

    def test_generates_correlation_id(
        self, config: VerdictConfig, make_registry: Any
    ) -> None:
        registry = make_registry(
            FakeGateway(ProviderId.OPENAI, answer=MEDIUM_75),
            FakeGateway(ProviderId.GEMINI, answer=MEDIUM_75),
        )
        with _client(config, registry) as client:
            resp = client.post("/api/consensus", json={"prompt": "Who said it?"})
        assert resp.status_code == 200
        assert len(resp.json()["message_id"]) == 36

    def test_invalid_prompt(self, config: VerdictConfig, make_registry: Any) -> None:
        with _client(config, make_registry()) as client:
            resp = client.post("/api/consensus", json={"prompt": " a "})
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Invalid prompt"}

    def test_missing_prompt(self, config: VerdictConfig, make_registry: Any) -> None:
        with _client(config, make_registry()) as client:
            resp = client.post("/api/consensus", json={})
        assert resp.status_code == 422

    def test_insufficient_responses(
        self, config: VerdictConfig, make_registry: Any
    ) -> None:
        registry = make_registry(
            FakeGateway(ProviderId.OPENAI, answer=MEDIUM_75),
            FakeGateway(ProviderId.GEMINI, answer=""),
        )
        with _client(config, registry) as client:
            resp = client.post("/api/consensus", json={"prompt": "Who said it?"})
        assert resp.status_code == 503
        assert "only 1/2 providers responded" in resp.json()["detail"]

    def test_pipeline_error(self, config: VerdictConfig, make_registry: Any) -> None:
        with (
            patch("verdict.api.routes.consensus.PhaseOrchestrator") as orchestrator,
            _client(config, make_registry()) as client,
        ):
            orchestrator.return_value.run = AsyncMock(
                side_effect=PipelineError("Invalid transition: idle -> score")
            )
            resp = client.post("/api/consensus", json={"prompt": "Who said it?"})
        assert resp.status_code == 500
        assert "Invalid transition" in resp.json()["detail"]


# ── Health ───────────────────────────────────────────────────────


class TestHealth:
    def test_health_basic(self, config: VerdictConfig) -> None:
        with TestClient(create_app(config)) as client:
            resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_detailed_ok(self, config: VerdictConfig, make_registry: Any) -> None:
        registry = make_registry(
            FakeGateway(ProviderId.GEMINI), FakeGateway(ProviderId.OPENAI)
        )
        with _client(config, registry) as client:
            data = client.get("/api/health/detailed").json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"
        assert data["providers"] == ["openai", "gemini"]
        assert data["uptime_seconds"] >= 0

    def test_detailed_degraded(self, config: VerdictConfig) -> None:
        with TestClient(create_app(config)) as client:
            data = client.get("/api/health/detailed").json()
        assert data["status"] == "degraded"
        assert data["providers"] == []
