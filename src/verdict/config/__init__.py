"""Configuration loading and validation."""

from verdict.config.loader import load_config
from verdict.config.schema import (
    ApiConfig,
    LoggingConfig,
    PipelineConfig,
    ProviderConfig,
    VerdictConfig,
)

__all__ = [
    "ApiConfig",
    "LoggingConfig",
    "PipelineConfig",
    "ProviderConfig",
    "VerdictConfig",
    "load_config",
]
