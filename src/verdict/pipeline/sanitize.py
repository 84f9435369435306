"""Light input hygiene applied to user prompts before any gateway call.

This is a blunt filter, not a security boundary: it trims, caps length,
masks the most common instruction-override phrases and drops markup tags.
"""

from __future__ import annotations

import re

MAX_PROMPT_CHARS = 4000
MIN_PROMPT_CHARS = 3
FILTERED = "[filtered]"

_OVERRIDE_RE = re.compile(
    r"\bignore (?:all )?previous instructions?\b|\bsystem prompt\b",
    re.IGNORECASE,
)
_TAG_RE = re.compile(r"</?[^>]+(?:>|$)")


def sanitize_prompt(text: str) -> str:
    """Return the cleaned prompt. Never raises."""
    cleaned = text.strip()[:MAX_PROMPT_CHARS]
    cleaned = _OVERRIDE_RE.sub(FILTERED, cleaned)
    return _TAG_RE.sub("", cleaned)


def is_valid_prompt(text: str) -> bool:
    """Whether ``text`` still holds a usable question once sanitized."""
    return len(sanitize_prompt(text).strip()) >= MIN_PROMPT_CHARS
