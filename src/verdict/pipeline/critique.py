"""Critique reply parsing.

A reviewer is asked for a bare JSON object with one review per answer it
was shown.  Replies are validated with Pydantic, then mapped onto
:class:`Critique` values.  Anything unusable falls back to a keyword
heuristic, flagged as degraded; parsing never raises.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from verdict.pipeline.json_extract import (
    JSONExtractionError,
    extract_validated,
    strip_fences,
)
from verdict.pipeline.machine import Critique, Vote

if TYPE_CHECKING:
    from collections.abc import Sequence

    from verdict.providers.base import ProviderId

logger = logging.getLogger(__name__)

EXPLANATION_PREVIEW_CHARS = 300


# ── Reply schema ──────────────────────────────────────────────


class CritiqueReview(BaseModel):
    """One entry of the ``reviews`` array."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    provider: str
    vote: Vote
    explanation: str = ""
    logical_flaws: list[str] = Field(default_factory=list, alias="logicalFlaws")
    factual_errors: list[str] = Field(default_factory=list, alias="factualErrors")
    reasoning_quality: str | None = Field(default=None, alias="reasoningQuality")
    handled_ambiguity_correctly: bool | None = Field(
        default=None, alias="handledAmbiguityCorrectly"
    )

    @field_validator("vote", mode="before")
    @classmethod
    def _normalize_vote(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("logical_flaws", "factual_errors", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class CritiqueEnvelope(BaseModel):
    """Top-level critique reply."""

    model_config = ConfigDict(extra="ignore")

    reviews: list[CritiqueReview]


# ── Parsing ───────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CritiqueParse:
    """Outcome of parsing one reviewer's reply."""

    critiques: tuple[Critique, ...]
    degraded: bool = False


def heuristic_vote(text: str) -> Vote:
    """Guess a vote from free text: disagree, then partial, else agree."""
    lower = text.lower()
    if "disagree" in lower:
        return Vote.DISAGREE
    if "partial" in lower:
        return Vote.PARTIAL
    return Vote.AGREE


def _map_reviews(
    envelope: CritiqueEnvelope,
    reviewer: ProviderId,
    reviewed: Sequence[ProviderId],
) -> list[Critique]:
    by_name = {p.value: p for p in reviewed}
    seen: set[ProviderId] = set()
    critiques: list[Critique] = []
    for review in envelope.reviews:
        target = by_name.get(review.provider.strip().lower())
        if target is None or target in seen:
            continue
        seen.add(target)
        critiques.append(
            Critique(
                reviewer=reviewer,
                reviewed=target,
                vote=review.vote,
                explanation=review.explanation,
                factual_errors=tuple(review.factual_errors),
                logical_flaws=tuple(review.logical_flaws),
            )
        )
    return critiques


def _fallback(
    text: str, reviewer: ProviderId, reviewed: Sequence[ProviderId]
) -> CritiqueParse:
    vote = heuristic_vote(text)
    explanation = text[:EXPLANATION_PREVIEW_CHARS]
    return CritiqueParse(
        critiques=tuple(
            Critique(
                reviewer=reviewer,
                reviewed=target,
                vote=vote,
                explanation=explanation,
                degraded=True,
            )
            for target in reviewed
        ),
        degraded=True,
    )


def parse_critique(
    text: str,
    reviewer: ProviderId,
    reviewed: Sequence[ProviderId],
) -> CritiqueParse:
    """Parse a reviewer's reply into critiques of the ``reviewed`` providers.

    Reviews naming a provider outside ``reviewed`` (or naming one twice)
    are dropped.  When nothing usable remains, every reviewed provider
    gets the heuristic vote instead.
    """
    try:
        envelope = extract_validated(strip_fences(text), CritiqueEnvelope)
    except (JSONExtractionError, ValidationError) as e:
        logger.warning("Unparseable critique from %s, using heuristic: %s", reviewer, e)
        return _fallback(text, reviewer, reviewed)

    critiques = _map_reviews(envelope, reviewer, reviewed)
    if not critiques:
        logger.warning("Critique from %s named no reviewed provider", reviewer)
        return _fallback(text, reviewer, reviewed)
    return CritiqueParse(critiques=tuple(critiques))


def apportion_usage(
    critiques: Sequence[Critique], tokens: int, cost_usd: float
) -> tuple[Critique, ...]:
    """Split one call's tokens and cost evenly across its critiques.

    The token remainder goes to the first critique, so the parts always
    sum to the call totals.
    """
    if not critiques:
        return ()
    count = len(critiques)
    share, remainder = divmod(tokens, count)
    return tuple(
        dataclasses.replace(
            c,
            tokens_used=share + (remainder if i == 0 else 0),
            cost_usd=cost_usd / count,
        )
        for i, c in enumerate(critiques)
    )
