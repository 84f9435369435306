"""Decision pipeline: gather, score, critique, refine, adjudicate."""

from verdict.pipeline.machine import (
    Adjudication,
    AgreementMatrix,
    ConfidenceLabel,
    ConsensusResult,
    Critique,
    PipelineContext,
    PipelineResult,
    PipelineState,
    PipelineStateMachine,
    ReasoningAudit,
    ScoreBreakdown,
    Vote,
)
from verdict.pipeline.orchestrator import PhaseOrchestrator
from verdict.pipeline.scoring import audit_responses, score_response

__all__ = [
    "Adjudication",
    "AgreementMatrix",
    "ConfidenceLabel",
    "ConsensusResult",
    "Critique",
    "PhaseOrchestrator",
    "PipelineContext",
    "PipelineResult",
    "PipelineState",
    "PipelineStateMachine",
    "ReasoningAudit",
    "ScoreBreakdown",
    "Vote",
    "audit_responses",
    "score_response",
]
