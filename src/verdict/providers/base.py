"""Provider gateway interface and data classes.

All gateways implement the ``ProviderGateway`` protocol. Unlike a plain
SDK wrapper, a gateway never raises: timeouts and vendor errors come back
as a ``ProviderResponse`` with empty content and a failure status.
Data classes are immutable (frozen dataclasses with slots).
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from verdict.core.errors import ProviderError, ProviderTimeoutError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class ProviderId(enum.StrEnum):
    """The fixed set of vendors the pipeline queries.

    Declaration order is the canonical provider order.
    """

    OPENAI = "openai"
    GEMINI = "gemini"
    PERPLEXITY = "perplexity"
    OPENROUTER = "openrouter"


class ResponseStatus(enum.StrEnum):
    """Outcome of a single gateway call."""

    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class ModelPricing:
    """Per-provider token prices in USD per million tokens."""

    input_cost_per_mtok: float
    output_cost_per_mtok: float

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        """Cost in USD of a call with the given token counts."""
        input_cost = (input_tokens / 1_000_000) * self.input_cost_per_mtok
        output_cost = (output_tokens / 1_000_000) * self.output_cost_per_mtok
        return input_cost + output_cost


DEFAULT_MODELS: dict[ProviderId, str] = {
    ProviderId.OPENAI: "gpt-4o-mini",
    ProviderId.GEMINI: "gemini-2.5-flash",
    ProviderId.PERPLEXITY: "sonar",
    ProviderId.OPENROUTER: "anthropic/claude-3-haiku",
}

DEFAULT_PRICING: dict[ProviderId, ModelPricing] = {
    ProviderId.OPENAI: ModelPricing(0.15, 0.60),
    ProviderId.GEMINI: ModelPricing(0.075, 0.30),
    ProviderId.PERPLEXITY: ModelPricing(0.20, 0.20),
    ProviderId.OPENROUTER: ModelPricing(0.025, 0.125),
}


@dataclass(frozen=True, slots=True)
class ProviderResponse:
    """One vendor's answer to one prompt."""

    provider: ProviderId
    model: str
    content: str
    tokens_input: int = 0
    tokens_output: int = 0
    cost_usd: float = 0.0
    latency_ms: float = 0.0
    status: ResponseStatus = ResponseStatus.SUCCESS
    error: str | None = None

    @property
    def has_content(self) -> bool:
        """Whether the response carries a usable answer."""
        return bool(self.content and self.content.strip())

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed (input + output)."""
        return self.tokens_input + self.tokens_output


def failed_response(
    provider: ProviderId,
    model: str,
    *,
    status: ResponseStatus,
    error: str,
    latency_ms: float = 0.0,
) -> ProviderResponse:
    """Build the empty-content response a gateway returns on failure."""
    return ProviderResponse(
        provider=provider,
        model=model,
        content="",
        latency_ms=latency_ms,
        status=status,
        error=error,
    )


async def guarded_call(
    provider: ProviderId,
    model: str,
    call: Callable[[], Awaitable[ProviderResponse]],
    *,
    timeout: float,
) -> ProviderResponse:
    """Run one vendor call under a timeout, converting failures to responses.

    ``ProviderTimeoutError`` and an expired ``timeout`` both yield status
    ``timeout``; any other error yields status ``error``.
    """
    start = time.monotonic()
    try:
        return await asyncio.wait_for(call(), timeout=timeout)
    except (TimeoutError, ProviderTimeoutError) as e:
        latency_ms = (time.monotonic() - start) * 1000
        logger.warning("%s call timed out after %.0fms", provider, latency_ms)
        return failed_response(
            provider,
            model,
            status=ResponseStatus.TIMEOUT,
            error=str(e) or "AI_TIMEOUT",
            latency_ms=latency_ms,
        )
    except ProviderError as e:
        logger.warning("%s call failed: %s", provider, e)
        return failed_response(
            provider,
            model,
            status=ResponseStatus.ERROR,
            error=str(e),
            latency_ms=(time.monotonic() - start) * 1000,
        )
    except Exception as e:
        logger.warning("%s call raised unexpectedly: %r", provider, e)
        return failed_response(
            provider,
            model,
            status=ResponseStatus.ERROR,
            error=repr(e),
            latency_ms=(time.monotonic() - start) * 1000,
        )


@runtime_checkable
class ProviderGateway(Protocol):
    """Protocol that all provider gateways must satisfy.

    Implementations are stateless: they hold connection config but no
    conversation state. The orchestrator manages all state.
    """

    @property
    def provider_id(self) -> ProviderId:
        """Which vendor this gateway talks to."""
        ...

    @property
    def default_model(self) -> str:
        """Model used when ``invoke`` gets no override."""
        ...

    async def invoke(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str | None = None,
    ) -> ProviderResponse:
        """Send one prompt pair and return the structured response.

        An empty ``system_prompt`` is omitted from the request.
        Must not raise: failures are reported through ``status``.
        """
        ...
