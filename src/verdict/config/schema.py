"""Pydantic models for verdict configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from verdict.providers.base import ProviderId


class ProviderConfig(BaseModel):
    """Configuration for a single LLM provider.

    ``model`` and the two cost fields fall back to the built-in tables
    when left unset.
    """

    enabled: bool = True
    api_key: str | None = None
    api_key_env: str | None = None
    base_url: str | None = None
    model: str | None = None
    input_cost_per_mtok: float | None = Field(default=None, ge=0)
    output_cost_per_mtok: float | None = Field(default=None, ge=0)


class PipelineConfig(BaseModel):
    """Settings for one decision pipeline run."""

    timeout_seconds: float = Field(default=15.0, gt=0)
    max_retries: int = Field(default=1, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    fallback_provider: str = ProviderId.OPENROUTER.value
    fallback_model: str = "openai/gpt-4o-mini"
    judge_provider: str = ProviderId.OPENAI.value
    max_tokens: int = Field(default=1500, gt=0)
    temperature: float = Field(default=0.3, ge=0, le=2)

    @field_validator("fallback_provider", "judge_provider")
    @classmethod
    def _known_provider(cls, value: str) -> str:
        try:
            return ProviderId(value.lower()).value
        except ValueError:
            known = ", ".join(p.value for p in ProviderId)
            msg = f"unknown provider {value!r} (expected one of: {known})"
            raise ValueError(msg) from None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""


class ApiConfig(BaseModel):
    """REST server settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=8080, gt=0, lt=65536)
    cors_origins: list[str] = Field(default_factory=list)


class VerdictConfig(BaseModel):
    """Top-level configuration for verdict."""

    providers: dict[str, ProviderConfig] = Field(
        default_factory=lambda: {
            "openai": ProviderConfig(api_key_env="OPENAI_API_KEY"),
            "gemini": ProviderConfig(api_key_env="GOOGLE_GEMINI_API_KEY"),
            "perplexity": ProviderConfig(api_key_env="PERPLEXITY_API_KEY"),
            "openrouter": ProviderConfig(api_key_env="OPENROUTER_API_KEY"),
        }
    )
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @field_validator("providers")
    @classmethod
    def _known_providers(
        cls, value: dict[str, ProviderConfig]
    ) -> dict[str, ProviderConfig]:
        unknown = sorted(set(value) - {p.value for p in ProviderId})
        if unknown:
            msg = f"unknown providers: {', '.join(unknown)}"
            raise ValueError(msg)
        return value
