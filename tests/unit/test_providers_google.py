"""Tests for the Gemini gateway (mocked SDK)."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

from verdict.core.errors import (
    ModelNotFoundError,
    ProviderAuthError,
    ProviderOverloadedError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)
from verdict.providers.base import ProviderGateway, ProviderId, ResponseStatus
from verdict.providers.google import PROVIDER_ID, GeminiGateway, _map_error

# ── Helpers ─────────────────────────────────────────────────────


def _make_genai_error(cls_name: str, message: str) -> Exception:
    """Create a google.genai error with the right constructor signature."""
    from google.genai import errors as genai_errors

    cls = getattr(genai_errors, cls_name)
    try:
        return cls(message)
    except TypeError:
        # Newer SDK requires (message, response_json)
        return cls(message, {})


def _make_response(
    text: str | None = "Hello",
    prompt_tokens: int = 10,
    candidate_tokens: int = 20,
) -> MagicMock:
    resp = MagicMock()
    resp.text = text
    resp.usage_metadata = MagicMock()
    resp.usage_metadata.prompt_token_count = prompt_tokens
    resp.usage_metadata.candidates_token_count = candidate_tokens
    return resp


def _make_client(response: Any = None) -> MagicMock:
    client = MagicMock()
    if response is None:
        response = _make_response()
    client.aio.models.generate_content = AsyncMock(return_value=response)
    return client


# ── Protocol ────────────────────────────────────────────────────


def test_provider_id() -> None:
    gateway = GeminiGateway(client=_make_client())
    assert gateway.provider_id == ProviderId.GEMINI


def test_satisfies_protocol() -> None:
    assert isinstance(GeminiGateway(client=_make_client()), ProviderGateway)


# ── invoke ──────────────────────────────────────────────────────


async def test_invoke_success() -> None:
    gateway = GeminiGateway(client=_make_client())
    response = await gateway.invoke("sys", "question")
    assert response.status == ResponseStatus.SUCCESS
    assert response.provider == PROVIDER_ID
    assert response.content == "Hello"
    assert response.tokens_input == 10
    assert response.tokens_output == 20
    assert response.cost_usd > 0


async def test_invoke_passes_contents_and_config() -> None:
    client = _make_client()
    gateway = GeminiGateway(client=client, max_tokens=300, temperature=0.2)
    await gateway.invoke("be careful", "question", model="gemini-2.0-flash")
    kwargs = client.aio.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-2.0-flash"
    assert kwargs["contents"] == [{"role": "user", "parts": [{"text": "question"}]}]
    config = kwargs["config"]
    assert config.system_instruction == "be careful"
    assert config.max_output_tokens == 300
    assert config.temperature == 0.2


async def test_invoke_empty_system_prompt_omitted() -> None:
    client = _make_client()
    await GeminiGateway(client=client).invoke("", "question")
    config = client.aio.models.generate_content.call_args.kwargs["config"]
    assert config.system_instruction is None


async def test_invoke_null_text() -> None:
    gateway = GeminiGateway(client=_make_client(_make_response(text=None)))
    response = await gateway.invoke("", "q")
    assert response.content == ""


async def test_invoke_sdk_error_becomes_error_status() -> None:
    client = _make_client()
    client.aio.models.generate_content.side_effect = _make_genai_error(
        "ClientError", "API key not valid"
    )
    response = await GeminiGateway(client=client).invoke("", "q")
    assert response.status == ResponseStatus.ERROR
    assert "[gemini]" in (response.error or "")


async def test_invoke_unexpected_exception_becomes_error_status() -> None:
    client = _make_client()
    client.aio.models.generate_content.side_effect = RuntimeError("socket closed")
    response = await GeminiGateway(client=client).invoke("", "q")
    assert response.status == ResponseStatus.ERROR
    assert "socket closed" in (response.error or "")


# ── Error mapping ───────────────────────────────────────────────


def test_map_error_auth() -> None:
    e = _make_genai_error("ClientError", "API key not valid")
    assert isinstance(_map_error(e), ProviderAuthError)


def test_map_error_not_found() -> None:
    e = _make_genai_error("ClientError", "404 model not found")
    assert isinstance(_map_error(e), ModelNotFoundError)


def test_map_error_rate_limit() -> None:
    e = _make_genai_error("ClientError", "429 rate limit exceeded")
    assert isinstance(_map_error(e), ProviderRateLimitError)


def test_map_error_server() -> None:
    e = _make_genai_error("ServerError", "503 overloaded")
    assert isinstance(_map_error(e), ProviderOverloadedError)


def test_map_error_other_client_error() -> None:
    e = _make_genai_error("ClientError", "request timed out")
    assert isinstance(_map_error(e), ProviderTimeoutError)
