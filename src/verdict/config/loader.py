"""Layered configuration for verdict.

Layers, lowest priority first:

- model defaults
- ``$XDG_CONFIG_HOME/verdict/config.toml`` (``~/.config`` when unset)
- ``./verdict.toml``
- the file named by ``$VERDICT_CONFIG``
- the ``path`` given to :func:`load_config`
- the ``overrides`` mapping given to :func:`load_config`

Tables merge key by key, so a file that sets only ``[providers.gemini]``
keeps the built-in settings of every other provider.  Providers without
an ``api_key`` pick it up from the variable named in ``api_key_env``.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from verdict.core.errors import ConfigError

from .schema import VerdictConfig

ENV_CONFIG_VAR = "VERDICT_CONFIG"
PROJECT_FILE = "verdict.toml"


def _config_home() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else Path.home() / ".config"


def _optional_sources() -> list[Path]:
    """Config files that are used only when present."""
    candidates = [
        _config_home() / "verdict" / "config.toml",
        Path.cwd() / PROJECT_FILE,
    ]
    return [c for c in candidates if c.is_file()]


def _required_source(raw: str, origin: str) -> Path:
    """A config file the caller asked for by name; it must exist."""
    source = Path(raw)
    if not source.is_file():
        msg = f"{origin} points to non-existent file: {raw}"
        raise ConfigError(msg)
    return source


def _parse(source: Path) -> dict[str, Any]:
    try:
        text = source.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read config file {source}: {e}"
        raise ConfigError(msg) from e
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {source}: {e}"
        raise ConfigError(msg) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated by ``override``; nested tables merge, leaves replace.

    Neither argument is modified.
    """
    result = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _deep_merge(current, value)
        else:
            result[key] = value
    return result


def _fill_api_keys(config: VerdictConfig) -> None:
    for provider in config.providers.values():
        if provider.api_key is not None or not provider.api_key_env:
            continue
        # An exported but empty variable counts as unset
        provider.api_key = os.environ.get(provider.api_key_env) or None


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> VerdictConfig:
    """Build the effective :class:`VerdictConfig`.

    Raises:
        ConfigError: A named file is missing, a file is not valid TOML,
            or the merged settings fail validation.
    """
    sources = _optional_sources()
    env_path = os.environ.get(ENV_CONFIG_VAR)
    if env_path:
        sources.append(_required_source(env_path, ENV_CONFIG_VAR))
    if path is not None:
        if not Path(path).is_file():
            msg = f"Config file not found: {path}"
            raise ConfigError(msg)
        sources.append(Path(path))

    layers = [_parse(s) for s in sources]
    if overrides:
        layers.append(overrides)

    settings: dict[str, Any] = VerdictConfig().model_dump()
    for layer in layers:
        settings = _deep_merge(settings, layer)

    try:
        config = VerdictConfig.model_validate(settings)
    except ValidationError as e:
        msg = f"Configuration validation failed: {e}"
        raise ConfigError(msg) from e

    _fill_api_keys(config)
    return config
