"""Retry with a fixed backoff delay for gateway calls.

Gateways never raise: failure is reported through the response status,
so retry decisions are made on :class:`ResponseStatus` rather than on
exception types.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from verdict.providers.base import ResponseStatus

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from verdict.providers.base import ProviderResponse

_RETRYABLE_STATUSES: frozenset[ResponseStatus] = frozenset(
    {ResponseStatus.ERROR, ResponseStatus.TIMEOUT}
)


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for retry with a fixed delay."""

    max_retries: int = 1
    delay: float = 1.0


def is_retryable(response: ProviderResponse) -> bool:
    """Check if a response's status should trigger a retry."""
    return response.status in _RETRYABLE_STATUSES


async def retry_with_backoff(
    fn: Callable[[], Awaitable[ProviderResponse]],
    config: RetryConfig | None = None,
    on_retry: Callable[[int, float, ProviderResponse], None] | None = None,
) -> ProviderResponse:
    """Call fn, retrying failed calls after a fixed delay.

    Retries while the response status is ``error`` or ``timeout``, up to
    ``config.max_retries`` extra attempts. The last response is returned
    whatever its status.

    Args:
        fn: Zero-arg callable returning an awaitable ProviderResponse.
        config: Retry configuration. Uses defaults if None.
        on_retry: Optional callback(attempt, delay, failed_response)
            before each retry.

    Returns:
        The first non-retryable response, or the last attempt's response.
    """
    cfg = config or RetryConfig()

    response = await fn()
    for attempt in range(1, cfg.max_retries + 1):
        if not is_retryable(response):
            break
        if on_retry is not None:
            on_retry(attempt, cfg.delay, response)
        await asyncio.sleep(cfg.delay)
        response = await fn()

    return response
