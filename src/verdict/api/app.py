"""FastAPI application factory for the verdict REST API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from verdict import __version__

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from verdict.config.schema import VerdictConfig


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the gateway registry unless one was injected before startup."""
    from verdict.providers.registry import build_registry

    if app.state.gateways is None:
        app.state.gateways = build_registry(app.state.config)
    yield


def create_app(config: VerdictConfig | None = None) -> FastAPI:
    """Create the app; ``config`` defaults to :func:`load_config`."""
    from verdict.config.loader import load_config

    config = config or load_config()
    app = FastAPI(
        title="verdict",
        description="Reasoning-quality consensus across LLM providers",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.gateways = None

    if config.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.api.cors_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    from verdict.api.health import router as health_router
    from verdict.api.routes.consensus import router as consensus_router

    for router in (consensus_router, health_router):
        app.include_router(router)

    return app
