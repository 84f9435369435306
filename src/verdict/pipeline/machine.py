"""Decision pipeline state machine: states, context, result types, guards.

Pure logic module. No IO (no provider calls). The orchestrator performs
the actual work of each phase; this module validates transitions and
holds the per-run data they produce.
"""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from verdict.core.errors import PipelineError
from verdict.providers.base import ProviderId

if TYPE_CHECKING:
    from collections.abc import Sequence

    from verdict.providers.base import ProviderResponse


class PipelineState(enum.Enum):
    """States of one decision pipeline run."""

    IDLE = "idle"
    GATHER = "gather"
    SCORE = "score"
    CRITIQUE = "critique"
    DECIDE = "decide"
    REFINE = "refine"
    ADJUDICATE = "adjudicate"
    COMPLETE = "complete"
    FAILED = "failed"


class Vote(enum.StrEnum):
    """A reviewer's verdict on another provider's reasoning."""

    AGREE = "agree"
    PARTIAL = "partial"
    DISAGREE = "disagree"


class ConfidenceLabel(enum.StrEnum):
    """Coarse label for a 0-100 confidence score."""

    UNANIMOUS = "unanimous"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


# reviewer -> reviewed -> vote
AgreementMatrix = dict[ProviderId, dict[ProviderId, Vote]]


# ── Data classes ──────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """The five weighted components of a reasoning quality score."""

    reasoning: float
    conclusion: float
    uncertainty: float
    confidence: float
    coherence: float


@dataclass(frozen=True, slots=True)
class ReasoningAudit:
    """Structural assessment of one provider's answer."""

    provider: ProviderId
    premises: tuple[str, ...]
    reasoning_steps: tuple[str, ...]
    conclusion: str
    confidence: str
    uncertainty_flag: bool
    paradox_flag: bool
    flags: tuple[str, ...]
    rqs: int
    breakdown: ScoreBreakdown

    def to_dict(self) -> dict[str, Any]:
        return _plain(self)


@dataclass(frozen=True, slots=True)
class Critique:
    """One provider's review of another provider's answer."""

    reviewer: ProviderId
    reviewed: ProviderId
    vote: Vote
    explanation: str
    factual_errors: tuple[str, ...] = ()
    logical_flaws: tuple[str, ...] = ()
    tokens_used: int = 0
    cost_usd: float = 0.0
    degraded: bool = False


@dataclass(frozen=True, slots=True)
class Adjudication:
    """The judge's selection of a final answer."""

    winner: ProviderId
    is_ambiguous: bool
    final_answer: str
    confidence: int
    reasoning: str = ""
    dissent_note: str = ""
    fallback: bool = False


@dataclass(frozen=True, slots=True)
class ConsensusResult:
    """Final decision and accounting for one run."""

    final_answer: str
    confidence_score: int
    confidence_label: ConfidenceLabel
    agreement_matrix: AgreementMatrix
    refinement_applied: bool
    refinement_rounds: int
    total_tokens: int
    total_cost_usd: float
    processing_time_ms: float
    winner: ProviderId
    is_ambiguous: bool = False
    reasoning: str = ""
    dissent_note: str = ""


def _plain(value: Any) -> Any:
    """Convert result values to JSON-serializable builtins."""
    if isinstance(value, enum.Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {_plain(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Everything a caller gets back from one pipeline run."""

    message_id: str
    user_prompt: str
    initial_responses: tuple[ProviderResponse, ...]
    critiques: tuple[Critique, ...]
    refined_responses: tuple[ProviderResponse, ...] | None
    consensus: ConsensusResult
    initial_audits: tuple[ReasoningAudit, ...] = ()
    final_audits: tuple[ReasoningAudit, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable view, enum members rendered as their values."""
        return _plain(self)


@dataclass
class PipelineContext:
    """Mutable state for one pipeline run.

    Created once per run and discarded afterwards; the orchestrator
    itself keeps no per-run state.
    """

    correlation_id: str
    question: str

    state: PipelineState = PipelineState.IDLE

    # Phase outputs, keyed by provider where they come from parallel tasks
    responses: dict[ProviderId, ProviderResponse] = field(default_factory=dict)
    initial_audits: tuple[ReasoningAudit, ...] = ()
    critiques: list[Critique] = field(default_factory=list)
    preliminary_score: int | None = None
    refined: dict[ProviderId, ProviderResponse] | None = None
    refinement_calls: list[ProviderResponse] = field(default_factory=list)
    final_audits: tuple[ReasoningAudit, ...] = ()
    judge_response: ProviderResponse | None = None
    adjudication: Adjudication | None = None

    error: str | None = None

    @property
    def responding(self) -> list[ProviderResponse]:
        """Initial responses that carry content, in insertion order."""
        return [r for r in self.responses.values() if r.has_content]


# ── State machine ─────────────────────────────────────────────

# Transitions allowed from non-terminal states.
# FAILED can be reached from any non-terminal state (handled separately).
_VALID_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.GATHER}),
    PipelineState.GATHER: frozenset({PipelineState.SCORE}),
    PipelineState.SCORE: frozenset({PipelineState.CRITIQUE}),
    PipelineState.CRITIQUE: frozenset({PipelineState.DECIDE}),
    PipelineState.DECIDE: frozenset(
        {PipelineState.REFINE, PipelineState.ADJUDICATE}
    ),
    PipelineState.REFINE: frozenset({PipelineState.ADJUDICATE}),
    PipelineState.ADJUDICATE: frozenset({PipelineState.COMPLETE}),
    PipelineState.COMPLETE: frozenset(),
    PipelineState.FAILED: frozenset(),
}

_TERMINAL_STATES: frozenset[PipelineState] = frozenset(
    {PipelineState.COMPLETE, PipelineState.FAILED}
)

MIN_RESPONSES = 2


class PipelineStateMachine:
    """Manages pipeline state transitions with guard validation.

    Pure logic. Validates that transitions are legal and that guard
    conditions are met, then moves the context forward.
    """

    def __init__(self, context: PipelineContext) -> None:
        self._ctx = context

    @property
    def context(self) -> PipelineContext:
        """The pipeline context managed by this machine."""
        return self._ctx

    @property
    def state(self) -> PipelineState:
        """Current state."""
        return self._ctx.state

    @property
    def is_terminal(self) -> bool:
        """Whether the machine is in a terminal state."""
        return self._ctx.state in _TERMINAL_STATES

    def can_transition(self, to: PipelineState) -> bool:
        """Check if a transition is valid without raising."""
        if self._ctx.state in _TERMINAL_STATES:
            return False
        if to == PipelineState.FAILED:
            return True
        if to not in _VALID_TRANSITIONS.get(self._ctx.state, frozenset()):
            return False
        return self._check_guard(to) is None

    def transition(self, to: PipelineState) -> None:
        """Execute a state transition with guard validation.

        Raises:
            PipelineError: If the transition is invalid or a guard
                condition is not met.
        """
        self._validate_transition(to)
        self._ctx.state = to

    def fail(self, error: str) -> None:
        """Transition to FAILED state with an error message.

        Raises:
            PipelineError: If already in a terminal state.
        """
        self.transition(PipelineState.FAILED)
        self._ctx.error = error

    def valid_transitions(self) -> Sequence[PipelineState]:
        """Return the list of currently valid transitions."""
        if self._ctx.state in _TERMINAL_STATES:
            return []
        candidates = list(_VALID_TRANSITIONS.get(self._ctx.state, frozenset()))
        candidates.append(PipelineState.FAILED)
        return [t for t in candidates if self.can_transition(t)]

    # ── Internals ─────────────────────────────────────────────

    def _validate_transition(self, to: PipelineState) -> None:
        """Raise PipelineError if the transition is not allowed."""
        current = self._ctx.state

        if current in _TERMINAL_STATES:
            msg = f"Cannot transition from terminal state {current.value}"
            raise PipelineError(msg)

        if to == PipelineState.FAILED:
            return

        valid = _VALID_TRANSITIONS.get(current, frozenset())
        if to not in valid:
            msg = f"Invalid transition: {current.value} -> {to.value}"
            raise PipelineError(msg)

        guard_error = self._check_guard(to)
        if guard_error is not None:
            raise PipelineError(guard_error)

    def _check_guard(self, to: PipelineState) -> str | None:
        """Return an error message if a guard condition fails, else None."""
        ctx = self._ctx

        if to == PipelineState.GATHER:
            if not ctx.question.strip():
                return "Cannot gather: question is empty"

        elif to == PipelineState.SCORE:
            if len(ctx.responding) < MIN_RESPONSES:
                return (
                    f"Cannot score: need {MIN_RESPONSES} responses, "
                    f"got {len(ctx.responding)}"
                )

        elif to == PipelineState.CRITIQUE:
            if not ctx.initial_audits:
                return "Cannot critique: no audits computed"

        elif to == PipelineState.REFINE:
            if ctx.preliminary_score is None:
                return "Cannot refine: no preliminary score"

        elif to == PipelineState.ADJUDICATE:
            if ctx.preliminary_score is None:
                return "Cannot adjudicate: no preliminary score"

        elif to == PipelineState.COMPLETE:
            if ctx.adjudication is None:
                return "Cannot complete: no adjudication"

        return None
