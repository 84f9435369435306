"""Parsing of the judge's labelled reply, and the no-judge fallback.

The judge answers in a fixed ``KEY: value`` format.  Every field is
optional in practice; each has a defined fallback so a sloppy reply
still yields a complete :class:`Adjudication`.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from verdict.pipeline.machine import Adjudication
from verdict.providers.base import ProviderId

if TYPE_CHECKING:
    from collections.abc import Sequence

    from verdict.pipeline.machine import ReasoningAudit
    from verdict.providers.base import ProviderResponse

DEFAULT_CONFIDENCE = 60
NO_ANSWER = "Unable to synthesize answer."

_CANONICAL_ORDER = {pid: i for i, pid in enumerate(ProviderId)}
_LEADING_INT_RE = re.compile(r"\s*(-?\d+)")


def _key_re(key: str) -> str:
    return rf"^[ \t]*[*_]*{re.escape(key)}[*_]*:[*_]*[ \t]*"


def extract_field(text: str, key: str) -> str:
    """Single-line value after ``KEY:``, or ``""`` if the key is absent."""
    match = re.search(_key_re(key) + r"(.*)$", text, re.MULTILINE)
    return match.group(1).strip() if match else ""


def extract_multiline_field(text: str, key: str) -> str:
    """Value after ``KEY:`` up to the next ``UPPER_KEY:`` line or the end."""
    match = re.search(
        _key_re(key) + r"(.*?)(?=\n[ \t]*[*_]*[A-Z][A-Z_]*[*_]*:|\Z)",
        text,
        re.MULTILINE | re.DOTALL,
    )
    return match.group(1).strip() if match else ""


def best_audit(audits: Sequence[ReasoningAudit]) -> ReasoningAudit:
    """Highest RQS; ties go to the earlier provider in canonical order."""
    return min(audits, key=lambda a: (-a.rqs, _CANONICAL_ORDER[a.provider]))


def _parse_confidence(value: str) -> int:
    match = _LEADING_INT_RE.match(value)
    if match is None:
        return DEFAULT_CONFIDENCE
    return max(0, min(100, int(match.group(1))))


def _content_of(responses: Sequence[ProviderResponse], provider: ProviderId) -> str:
    for r in responses:
        if r.provider == provider and r.has_content:
            return r.content
    return ""


def parse_adjudication(
    text: str,
    responses: Sequence[ProviderResponse],
    audits: Sequence[ReasoningAudit],
) -> Adjudication:
    """Map the judge's reply onto an :class:`Adjudication`.

    ``WINNER`` must name a provider that responded; otherwise the
    highest-RQS provider wins.  ``IS_AMBIGUOUS`` is true only for an
    exact ``YES``.  ``CONFIDENCE`` is clamped to 0-100 (60 if absent).
    """
    responding = sorted(
        {r.provider for r in responses if r.has_content},
        key=_CANONICAL_ORDER.__getitem__,
    )

    named = extract_field(text, "WINNER").lower()
    winner = next((p for p in responding if p.value in named), None)
    if winner is None:
        winner = best_audit(audits).provider if audits else responding[0]

    final_answer = (
        extract_multiline_field(text, "FINAL_ANSWER")
        or _content_of(responses, winner)
        or NO_ANSWER
    )

    return Adjudication(
        winner=winner,
        is_ambiguous=extract_field(text, "IS_AMBIGUOUS").upper() == "YES",
        final_answer=final_answer,
        confidence=_parse_confidence(extract_field(text, "CONFIDENCE")),
        reasoning=extract_multiline_field(text, "REASONING"),
        dissent_note=extract_multiline_field(text, "DISSENT_NOTE"),
    )


def fallback_adjudication(
    responses: Sequence[ProviderResponse],
    audits: Sequence[ReasoningAudit],
) -> Adjudication:
    """Pick the winner deterministically when the judge gave no content."""
    best = best_audit(audits)
    return Adjudication(
        winner=best.provider,
        is_ambiguous=best.uncertainty_flag,
        final_answer=_content_of(responses, best.provider) or NO_ANSWER,
        confidence=best.rqs,
        reasoning="Judge unavailable; selected the highest reasoning quality score.",
        fallback=True,
    )
