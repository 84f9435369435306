"""Recover a JSON object from a model reply.

Reviewers are told to answer with bare JSON, yet replies arrive fenced,
prefixed with a sentence, or trailed by commentary.  :func:`extract_json`
walks a list of candidate substrings and returns the first that decodes
to an object.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pydantic import BaseModel

    M = TypeVar("M", bound=BaseModel)

_FENCE_MARK_RE = re.compile(r"```(?:json)?[ \t]*\n?|```", re.IGNORECASE)
_FENCED_BODY_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


class JSONExtractionError(Exception):
    """No JSON object could be recovered from the text."""


def strip_fences(text: str) -> str:
    """Drop markdown fence markers, keeping what they enclose."""
    return _FENCE_MARK_RE.sub("", text).strip()


def _balanced_objects(text: str) -> Iterator[str]:
    """Top-level ``{...}`` spans, honouring braces inside JSON strings."""
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"' and depth:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth:
            depth -= 1
            if depth == 0:
                yield text[start : i + 1]


def _candidates(text: str) -> Iterator[str]:
    yield text.strip()
    for match in _FENCED_BODY_RE.finditer(text):
        yield match.group(1)
    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        yield text[first : last + 1]
    yield from _balanced_objects(text)


def extract_json(text: str) -> dict[str, Any]:
    """Return the first JSON object found in ``text``.

    Candidates, in order: the whole text, fenced blocks, the span from the
    first ``{`` to the last ``}``, then each balanced top-level object.

    Raises:
        JSONExtractionError: Empty text, or no candidate is a JSON object.
    """
    if not text.strip():
        msg = "Empty text"
        raise JSONExtractionError(msg)

    for candidate in _candidates(text):
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value

    msg = "No valid JSON object found in text"
    raise JSONExtractionError(msg)


def extract_validated(text: str, model_class: type[M]) -> M:
    """:func:`extract_json`, then ``model_class.model_validate``.

    Raises:
        JSONExtractionError: If JSON cannot be extracted.
        pydantic.ValidationError: If the object does not fit the model.
    """
    return model_class.model_validate(extract_json(text))
