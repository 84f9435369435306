"""Core errors and shared utilities."""

from verdict.core.errors import (
    ConfigError,
    InsufficientResponsesError,
    ModelNotFoundError,
    PipelineError,
    ProviderAuthError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderOverloadedError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    VerdictError,
)

__all__ = [
    "ConfigError",
    "InsufficientResponsesError",
    "ModelNotFoundError",
    "PipelineError",
    "ProviderAuthError",
    "ProviderError",
    "ProviderNotConfiguredError",
    "ProviderOverloadedError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "VerdictError",
]
