"""Errors raised by verdict.

    VerdictError
    ├── ProviderError(provider_id)
    │   ├── ProviderAuthError
    │   ├── ProviderRateLimitError(retry_after)
    │   ├── ProviderTimeoutError
    │   ├── ProviderOverloadedError
    │   ├── ModelNotFoundError
    │   └── ProviderNotConfiguredError
    ├── PipelineError
    │   └── InsufficientResponsesError(responded, total)
    └── ConfigError

Gateways translate SDK exceptions into the ``ProviderError`` family and
``guarded_call`` turns those into failed responses, so a pipeline run only
ever raises ``InsufficientResponsesError``.
"""

from __future__ import annotations


class VerdictError(Exception):
    """Root of every verdict exception."""


# ─── Provider Errors ──────────────────────────────────────────


class ProviderError(VerdictError):
    """A call to one provider failed; the message is prefixed with its id."""

    def __init__(self, provider_id: str, message: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"[{provider_id}] {message}")


class ProviderAuthError(ProviderError):
    """Key rejected or missing."""


class ProviderRateLimitError(ProviderError):
    def __init__(self, provider_id: str, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        detail = "Rate limited"
        if retry_after is not None:
            detail = f"{detail} (retry after {retry_after}s)"
        super().__init__(provider_id, detail)


class ProviderTimeoutError(ProviderError):
    pass


class ProviderOverloadedError(ProviderError):
    """5xx from the provider, including 503 and 529."""


class ModelNotFoundError(ProviderError):
    pass


class ProviderNotConfiguredError(ProviderError):
    """Looked up a provider with no registered gateway."""


# ─── Pipeline Errors ──────────────────────────────────────────


class PipelineError(VerdictError):
    """A run could not continue, or the state machine was misused."""


class InsufficientResponsesError(PipelineError):
    """Fewer than two providers answered, so there is nothing to compare."""

    def __init__(self, responded: int, total: int) -> None:
        self.responded = responded
        self.total = total
        msg = f"Insufficient AI responses: only {responded}/{total} providers responded"
        super().__init__(msg)


# ─── Configuration Errors ─────────────────────────────────────


class ConfigError(VerdictError):
    """A config file is missing, unreadable or fails validation."""
