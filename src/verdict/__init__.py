"""verdict - reasoning-quality consensus across LLM providers."""

__version__ = "0.1.0"
