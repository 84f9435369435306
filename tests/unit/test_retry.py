"""Tests for status-based retry with a fixed delay."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from verdict.core.retry import RetryConfig, is_retryable, retry_with_backoff
from verdict.providers.base import ProviderId, ProviderResponse, ResponseStatus


def _response(status: ResponseStatus, content: str = "") -> ProviderResponse:
    return ProviderResponse(
        provider=ProviderId.OPENAI, model="m", content=content, status=status
    )


OK = _response(ResponseStatus.SUCCESS, "answer")
ERROR = _response(ResponseStatus.ERROR)
TIMEOUT = _response(ResponseStatus.TIMEOUT)

# ─── RetryConfig ──────────────────────────────────────────────


class TestRetryConfig:
    def test_defaults(self):
        cfg = RetryConfig()
        assert cfg.max_retries == 1
        assert cfg.delay == 1.0

    def test_frozen(self):
        cfg = RetryConfig()
        with pytest.raises(AttributeError):
            cfg.max_retries = 5  # type: ignore[misc]


# ─── is_retryable ─────────────────────────────────────────────


class TestIsRetryable:
    def test_error_is_retryable(self):
        assert is_retryable(ERROR) is True

    def test_timeout_is_retryable(self):
        assert is_retryable(TIMEOUT) is True

    def test_success_is_not_retryable(self):
        assert is_retryable(OK) is False

    def test_fallback_is_not_retryable(self):
        assert is_retryable(_response(ResponseStatus.FALLBACK, "x")) is False


# ─── retry_with_backoff ───────────────────────────────────────


class TestRetryWithBackoff:
    async def test_succeeds_on_first_try(self):
        fn = AsyncMock(return_value=OK)
        result = await retry_with_backoff(fn)
        assert result is OK
        assert fn.call_count == 1

    async def test_retries_once_by_default(self):
        fn = AsyncMock(side_effect=[TIMEOUT, OK])
        with patch.object(asyncio, "sleep", new_callable=AsyncMock) as sleep:
            result = await retry_with_backoff(fn)
        assert result is OK
        assert fn.call_count == 2
        sleep.assert_awaited_once_with(1.0)

    async def test_returns_last_failure(self):
        fn = AsyncMock(side_effect=[ERROR, TIMEOUT])
        with patch.object(asyncio, "sleep", new_callable=AsyncMock):
            result = await retry_with_backoff(fn, RetryConfig(max_retries=1))
        assert result is TIMEOUT
        assert fn.call_count == 2

    async def test_no_retries(self):
        fn = AsyncMock(return_value=ERROR)
        result = await retry_with_backoff(fn, RetryConfig(max_retries=0))
        assert result is ERROR
        assert fn.call_count == 1

    async def test_on_retry_callback(self):
        fn = AsyncMock(side_effect=[ERROR, ERROR, OK])
        callback = MagicMock()
        cfg = RetryConfig(max_retries=3, delay=0.0)
        result = await retry_with_backoff(fn, cfg, on_retry=callback)
        assert result is OK
        assert callback.call_count == 2
        callback.assert_any_call(1, 0.0, ERROR)
        callback.assert_any_call(2, 0.0, ERROR)
