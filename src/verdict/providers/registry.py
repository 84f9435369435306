"""Gateway registry: one gateway per provider, in canonical order."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from verdict.core.errors import ProviderNotConfiguredError
from verdict.providers.base import DEFAULT_PRICING, ModelPricing, ProviderId
from verdict.providers.google import GeminiGateway
from verdict.providers.openai_compat import OpenAICompatibleGateway

if TYPE_CHECKING:
    from collections.abc import Iterator

    from verdict.config.schema import ProviderConfig, VerdictConfig
    from verdict.providers.base import ProviderGateway

logger = logging.getLogger(__name__)


class GatewayRegistry:
    """Central registry for provider gateways.

    Iteration and :attr:`provider_ids` follow the canonical
    :class:`ProviderId` order, whatever the registration order was.
    """

    def __init__(self) -> None:
        self._gateways: dict[ProviderId, ProviderGateway] = {}

    # ── Registration ─────────────────────────────────────────────

    def register(self, gateway: ProviderGateway) -> None:
        """Register a gateway under its provider id.

        Raises:
            ValueError: If a gateway with the same provider_id is
                already registered.
        """
        pid = ProviderId(gateway.provider_id)
        if pid in self._gateways:
            msg = f"Provider already registered: {pid}"
            raise ValueError(msg)
        self._gateways[pid] = gateway

    # ── Lookup ───────────────────────────────────────────────────

    def get(self, provider_id: ProviderId | str) -> ProviderGateway:
        """Return the gateway registered for ``provider_id``.

        Raises:
            ProviderNotConfiguredError: If no gateway is registered.
        """
        try:
            return self._gateways[ProviderId(provider_id)]
        except (KeyError, ValueError):
            raise ProviderNotConfiguredError(
                str(provider_id), "No gateway configured"
            ) from None

    @property
    def provider_ids(self) -> list[ProviderId]:
        """Registered provider ids in canonical order."""
        return [pid for pid in ProviderId if pid in self._gateways]

    def __contains__(self, provider_id: object) -> bool:
        try:
            return ProviderId(provider_id) in self._gateways  # type: ignore[arg-type]
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._gateways)

    def __iter__(self) -> Iterator[ProviderGateway]:
        return iter([self._gateways[pid] for pid in self.provider_ids])


def pricing_for(pid: ProviderId, pcfg: ProviderConfig) -> ModelPricing:
    """Configured pricing for a provider, falling back to the defaults."""
    default = DEFAULT_PRICING[pid]
    return ModelPricing(
        input_cost_per_mtok=(
            pcfg.input_cost_per_mtok
            if pcfg.input_cost_per_mtok is not None
            else default.input_cost_per_mtok
        ),
        output_cost_per_mtok=(
            pcfg.output_cost_per_mtok
            if pcfg.output_cost_per_mtok is not None
            else default.output_cost_per_mtok
        ),
    )


def build_registry(config: VerdictConfig) -> GatewayRegistry:
    """Instantiate gateways for every enabled provider with an API key."""
    registry = GatewayRegistry()
    pipeline = config.pipeline

    for pid in ProviderId:
        pcfg = config.providers.get(pid.value)
        if pcfg is None or not pcfg.enabled:
            continue
        if not pcfg.api_key:
            logger.debug("Skipping %s: no API key", pid)
            continue

        common: dict[str, Any] = {
            "model": pcfg.model,
            "pricing": pricing_for(pid, pcfg),
            "timeout": pipeline.timeout_seconds,
            "max_tokens": pipeline.max_tokens,
            "temperature": pipeline.temperature,
        }
        if pid == ProviderId.GEMINI:
            registry.register(GeminiGateway(api_key=pcfg.api_key, **common))
        else:
            registry.register(
                OpenAICompatibleGateway(
                    pid, api_key=pcfg.api_key, base_url=pcfg.base_url, **common
                )
            )

    logger.info("Configured providers: %s", ", ".join(registry.provider_ids) or "none")
    return registry
