"""LLM provider gateways."""

from verdict.providers.base import (
    DEFAULT_MODELS,
    DEFAULT_PRICING,
    ModelPricing,
    ProviderGateway,
    ProviderId,
    ProviderResponse,
    ResponseStatus,
)
from verdict.providers.registry import GatewayRegistry, build_registry

__all__ = [
    "DEFAULT_MODELS",
    "DEFAULT_PRICING",
    "GatewayRegistry",
    "ModelPricing",
    "ProviderGateway",
    "ProviderId",
    "ProviderResponse",
    "ResponseStatus",
    "build_registry",
]
