"""Reasoning quality scoring: a deterministic, local heuristic.

Scores the *structure* of a free-text answer rather than its content:
how much reasoning it shows, whether it commits to a conclusion without
contradicting itself, whether it acknowledges uncertainty, and whether
its stated confidence is backed by argument.  No IO, no model calls.

The reasoning quality score (RQS) is a weighted sum of five components,
each 0-100:

    reasoning depth           30%
    conclusion clarity        20%
    uncertainty acknowledged  25%
    confidence calibration    15%
    coherence                 10%
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

from verdict.pipeline.machine import ReasoningAudit, ScoreBreakdown

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from verdict.providers.base import ProviderId, ProviderResponse

# ── Vocabulary ────────────────────────────────────────────────

UNCERTAINTY_KEYWORDS: tuple[str, ...] = (
    "cannot be determined",
    "cannot determine",
    "insufficient information",
    "ambiguous",
    "unclear",
    "depends on",
    "without more context",
    "single statement",
    "cannot conclude",
    "not enough information",
    "need more",
    "impossible to say",
    "indeterminate",
    "underdetermined",
)

PARADOX_KEYWORDS: tuple[str, ...] = (
    "paradox",
    "self-referential",
    "circular",
    "contradiction",
    "undefined",
)

STRONG_CLAIM_KEYWORDS: tuple[str, ...] = (
    "definitely",
    "certainly",
    "absolutely",
    "obviously",
    "clearly",
)

# (affirmative, negative) pairs; affirmative first means self-refuting
_REFUTATION_PAIRS: tuple[tuple[re.Pattern[str], re.Pattern[str]], ...] = tuple(
    (re.compile(rf"\b{a}\b", re.IGNORECASE), re.compile(rf"\b{n}\b", re.IGNORECASE))
    for a, n in (
        ("is true", "is false"),
        ("can", "cannot"),
        ("possible", "impossible"),
    )
)

_HIGH_CONFIDENCE_RE = re.compile(r"\b(?:high|certain)\b", re.IGNORECASE)
_MEDIUM_CONFIDENCE_RE = re.compile(r"\b(?:medium|moderate)\b", re.IGNORECASE)

FLAG_AMBIGUITY = "acknowledged-ambiguity"
FLAG_PARADOX = "paradox-detected"
FLAG_OVERCONFIDENT = "overconfident"
FLAG_SELF_REFUTING = "self-refuting"

# ── Section extraction ────────────────────────────────────────

ANSWER_LABELS: tuple[str, ...] = ("Answer",)
REASONING_LABELS: tuple[str, ...] = ("Reasoning", "Explanation")
CONFIDENCE_LABELS: tuple[str, ...] = ("Confidence",)
UNCERTAINTY_LABELS: tuple[str, ...] = ("Uncertainties", "Caveats")

_KNOWN_LABELS = (
    ANSWER_LABELS + REASONING_LABELS + CONFIDENCE_LABELS + UNCERTAINTY_LABELS
)

_PLAIN_HEADER_RE = re.compile(
    rf"^\s*(?:{'|'.join(_KNOWN_LABELS)})\s*:", re.IGNORECASE
)

MIN_REASONING_LINE = 15
MIN_ANSWER_CHARS = 5


def _header_re(label: str) -> re.Pattern[str]:
    return re.compile(
        r"^[ \t]*(?:>[ \t]*)?"
        r"(?P<hash>#{1,6}[ \t]*)?"
        r"[*_]*[ \t]*"
        rf"{re.escape(label)}(?![A-Za-z0-9])"
        r"[ \t]*[*_]*[ \t]*"
        r"(?P<colon>:)?"
        r"[ \t]*[*_]*",
        re.IGNORECASE | re.MULTILINE,
    )


def _section_body(text: str, start: int) -> str:
    """Collect lines from ``start`` up to the next section header."""
    lines = text[start:].split("\n")
    body = [lines[0]]
    for line in lines[1:]:
        lead = line.lstrip()
        if lead.startswith(("**", "#")) or _PLAIN_HEADER_RE.match(line):
            break
        body.append(line)
    return "\n".join(body).strip()


def extract_section(text: str, labels: Sequence[str]) -> str:
    """Return the body of the first non-empty section named by ``labels``.

    A header is a line starting with the label, optionally wrapped in
    markdown emphasis, preceded by ``#`` heading markers or a ``>`` quote.
    Plain and emphasised headers need a colon; ``#`` headings do not,
    but must then stand alone on their line.  Never raises.
    """
    for label in labels:
        for match in _header_re(label).finditer(text):
            line_end = text.find("\n", match.end())
            rest = text[match.end() : line_end if line_end != -1 else len(text)]
            if match.group("colon") is None and (
                match.group("hash") is None or rest.strip()
            ):
                continue
            body = _section_body(text, match.end())
            if body:
                return body
            break
    return ""


def extract_answer(text: str) -> str:
    return extract_section(text, ANSWER_LABELS)


def extract_reasoning(text: str) -> str:
    return extract_section(text, REASONING_LABELS)


def extract_confidence(text: str) -> str:
    return extract_section(text, CONFIDENCE_LABELS)


def extract_uncertainties(text: str) -> str:
    return extract_section(text, UNCERTAINTY_LABELS)


def reasoning_lines(section: str) -> list[str]:
    """Substantive lines of a reasoning section, stripped."""
    return [
        line.strip()
        for line in section.splitlines()
        if len(line.strip()) > MIN_REASONING_LINE
    ]


# ── Detectors ─────────────────────────────────────────────────


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    lower = text.lower()
    return any(k in lower for k in keywords)


def acknowledges_uncertainty(text: str) -> bool:
    return _contains_any(text, UNCERTAINTY_KEYWORDS)


def detects_paradox(text: str) -> bool:
    return _contains_any(text, PARADOX_KEYWORDS)


def has_strong_claim(text: str) -> bool:
    return _contains_any(text, STRONG_CLAIM_KEYWORDS)


def detect_self_refutation(text: str) -> bool:
    """True if an affirmation is later contradicted by its antonym.

    Checks ``is true``/``is false``, ``can``/``cannot`` and
    ``possible``/``impossible`` as whole words.  Order matters: the
    negative appearing first is ordinary hedging, not self-refutation.
    """
    for affirmative, negative in _REFUTATION_PAIRS:
        pos = affirmative.search(text)
        neg = negative.search(text)
        if pos is not None and neg is not None and pos.start() < neg.start():
            return True
    return False


# ── Scoring ───────────────────────────────────────────────────


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _reasoning_component(line_count: int) -> float:
    if line_count == 0:
        return 10.0
    if line_count >= 4:
        return 100.0
    return line_count / 4 * 100


def _confidence_component(confidence: str, overconfident: bool) -> float:
    if overconfident:
        return 20.0
    if _HIGH_CONFIDENCE_RE.search(confidence):
        return 70.0
    if _MEDIUM_CONFIDENCE_RE.search(confidence):
        return 85.0
    return 90.0


def compute_rqs(breakdown: ScoreBreakdown) -> int:
    """Weighted RQS of a breakdown, rounded half-up and clamped to 0-100."""
    # Integer percent weights keep exact halves exact.
    weighted = (
        30 * breakdown.reasoning
        + 20 * breakdown.conclusion
        + 25 * breakdown.uncertainty
        + 15 * breakdown.confidence
        + 10 * breakdown.coherence
    ) / 100
    return max(0, min(100, round_half_up(weighted)))


def score_response(text: str, provider: ProviderId) -> ReasoningAudit:
    """Audit one answer's reasoning structure.  Pure and deterministic."""
    answer = extract_answer(text)
    reasoning = extract_reasoning(text)
    confidence = extract_confidence(text)
    steps = reasoning_lines(reasoning)

    uncertain = acknowledges_uncertainty(text)
    paradox = detects_paradox(text)
    overconfident = has_strong_claim(text) and len(steps) < 2
    self_refuting = detect_self_refutation(f"{answer} {reasoning}")

    if len(answer) < MIN_ANSWER_CHARS:
        conclusion_score = 20.0
    elif self_refuting:
        conclusion_score = 0.0
    else:
        conclusion_score = 100.0

    breakdown = ScoreBreakdown(
        reasoning=_reasoning_component(len(steps)),
        conclusion=conclusion_score,
        uncertainty=100.0 if uncertain else 50.0,
        confidence=_confidence_component(confidence, overconfident),
        coherence=0.0 if self_refuting else 100.0,
    )

    flags: list[str] = []
    if uncertain:
        flags.append(FLAG_AMBIGUITY)
    if paradox:
        flags.append(FLAG_PARADOX)
    if overconfident:
        flags.append(FLAG_OVERCONFIDENT)
    if self_refuting:
        flags.append(FLAG_SELF_REFUTING)

    return ReasoningAudit(
        provider=provider,
        premises=tuple(steps[:3]),
        reasoning_steps=tuple(steps),
        conclusion=answer or text[:200],
        confidence=confidence,
        uncertainty_flag=uncertain,
        paradox_flag=paradox,
        flags=tuple(flags),
        rqs=compute_rqs(breakdown),
        breakdown=breakdown,
    )


def audit_responses(
    responses: Iterable[ProviderResponse],
) -> tuple[ReasoningAudit, ...]:
    """One audit per response with content, in input order."""
    return tuple(
        score_response(r.content, r.provider) for r in responses if r.has_content
    )
