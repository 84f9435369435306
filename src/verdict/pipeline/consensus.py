"""Consensus scoring: agreement matrix, averaged RQS and confidence labels.

Pure functions.  The numeric score drives the refine-or-adjudicate
decision; the matrix is for display only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from verdict.pipeline.machine import AgreementMatrix, ConfidenceLabel, Vote
from verdict.pipeline.scoring import round_half_up

if TYPE_CHECKING:
    from collections.abc import Sequence

    from verdict.pipeline.machine import Critique, ReasoningAudit
    from verdict.providers.base import ProviderId

REFINE_THRESHOLD = 75
NEUTRAL_SCORE = 50

_LABEL_THRESHOLDS: tuple[tuple[int, ConfidenceLabel], ...] = (
    (90, ConfidenceLabel.UNANIMOUS),
    (75, ConfidenceLabel.HIGH),
    (55, ConfidenceLabel.MODERATE),
)


@dataclass(frozen=True, slots=True)
class ConsensusScore:
    """Preliminary agreement assessment of one round."""

    score: int
    label: ConfidenceLabel
    matrix: AgreementMatrix


def build_agreement_matrix(
    providers: Sequence[ProviderId],
    critiques: Sequence[Critique],
) -> AgreementMatrix:
    """Reviewer -> reviewed -> vote, with missing pairs shown as partial.

    The diagonal is left out: nobody reviews itself.
    """
    votes = {(c.reviewer, c.reviewed): c.vote for c in critiques}
    return {
        reviewer: {
            reviewed: votes.get((reviewer, reviewed), Vote.PARTIAL)
            for reviewed in providers
            if reviewed != reviewer
        }
        for reviewer in providers
    }


def average_rqs(audits: Sequence[ReasoningAudit]) -> int:
    """Mean RQS rounded half-up; 50 when there is nothing to average."""
    if not audits:
        return NEUTRAL_SCORE
    return round_half_up(sum(a.rqs for a in audits) / len(audits))


def confidence_label(score: int) -> ConfidenceLabel:
    for threshold, label in _LABEL_THRESHOLDS:
        if score >= threshold:
            return label
    return ConfidenceLabel.LOW


def score_consensus(
    providers: Sequence[ProviderId],
    critiques: Sequence[Critique],
    audits: Sequence[ReasoningAudit],
) -> ConsensusScore:
    score = average_rqs(audits)
    return ConsensusScore(
        score=score,
        label=confidence_label(score),
        matrix=build_agreement_matrix(providers, critiques),
    )


def should_refine(score: int) -> bool:
    """Refine when the preliminary score is below the threshold."""
    return score < REFINE_THRESHOLD
