"""Phase orchestrator: drives one question through the decision pipeline.

Gather -> Score -> Critique -> Decide -> (Refine ->) Adjudicate.

Each phase fans out one task per provider with ``asyncio.gather`` and
folds the returned values by provider id; tasks never write shared
state.  A run owns its :class:`PipelineContext` and state machine, so
one orchestrator can serve concurrent runs.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from typing import TYPE_CHECKING, NoReturn

from verdict.core.errors import InsufficientResponsesError
from verdict.core.retry import RetryConfig, retry_with_backoff
from verdict.pipeline.adjudication import fallback_adjudication, parse_adjudication
from verdict.pipeline.consensus import score_consensus, should_refine
from verdict.pipeline.critique import apportion_usage, parse_critique
from verdict.pipeline.machine import (
    MIN_RESPONSES,
    ConfidenceLabel,
    ConsensusResult,
    PipelineContext,
    PipelineResult,
    PipelineState,
    PipelineStateMachine,
    Vote,
)
from verdict.pipeline.prompts import (
    INITIAL_SYSTEM_PROMPT,
    JUDGE_SYSTEM_PROMPT,
    ReviewTarget,
    build_adjudication_prompt,
    build_critique_prompt,
    build_refinement_prompt,
)
from verdict.pipeline.sanitize import sanitize_prompt
from verdict.pipeline.scoring import audit_responses
from verdict.providers.base import ProviderId, ResponseStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from verdict.config.schema import PipelineConfig
    from verdict.pipeline.machine import Adjudication, Critique, ReasoningAudit
    from verdict.providers.base import ProviderGateway, ProviderResponse
    from verdict.providers.registry import GatewayRegistry

logger = logging.getLogger(__name__)


def _rqs_summary(audits: Sequence[ReasoningAudit]) -> str:
    return ", ".join(f"{a.provider}:{a.rqs}" for a in audits)


class PhaseOrchestrator:
    """Runs the full pipeline against a set of provider gateways.

    Args:
        gateways: One gateway per participating provider.
        config: Timeouts, retry, fallback and judge settings.
        on_transition: Optional callback receiving each new state.
    """

    def __init__(
        self,
        gateways: GatewayRegistry,
        config: PipelineConfig,
        *,
        on_transition: Callable[[PipelineState], None] | None = None,
    ) -> None:
        self._gateways = gateways
        self._config = config
        self._on_transition = on_transition
        self._retry = RetryConfig(
            max_retries=config.max_retries, delay=config.retry_delay
        )
        self._fallback_id = ProviderId(config.fallback_provider)
        self._judge_id = ProviderId(config.judge_provider)

    # ── Public API ───────────────────────────────────────────────

    async def run(self, user_prompt: str, correlation_id: str) -> PipelineResult:
        """Answer one question.

        Raises:
            InsufficientResponsesError: Fewer than two providers produced
                an answer, even after retries and fallback.  A prompt that
                sanitizes to nothing fails the same way without any call.
        """
        start = time.monotonic()
        ctx = PipelineContext(
            correlation_id=correlation_id, question=sanitize_prompt(user_prompt)
        )
        sm = PipelineStateMachine(ctx)

        # Nothing left to ask after sanitizing: no provider can answer
        if not ctx.question.strip():
            self._fail(sm, 0)

        self._advance(sm, PipelineState.GATHER)
        await self._gather(ctx)
        if len(ctx.responding) < MIN_RESPONSES:
            self._fail(sm, len(ctx.responding))

        self._advance(sm, PipelineState.SCORE)
        ctx.initial_audits = audit_responses(ctx.responding)
        logger.info("RQS scores: %s", _rqs_summary(ctx.initial_audits))

        self._advance(sm, PipelineState.CRITIQUE)
        await self._critique(ctx)

        preliminary = score_consensus(
            [r.provider for r in ctx.responding], ctx.critiques, ctx.initial_audits
        )
        ctx.preliminary_score = preliminary.score
        self._advance(sm, PipelineState.DECIDE)

        if should_refine(preliminary.score):
            logger.info("Refining (average RQS %d)", preliminary.score)
            self._advance(sm, PipelineState.REFINE)
            await self._refine(ctx)
            ctx.final_audits = audit_responses((ctx.refined or {}).values())
            logger.info("Post-refinement RQS: %s", _rqs_summary(ctx.final_audits))
        else:
            logger.info("Skipping refinement (average RQS %d)", preliminary.score)
            ctx.final_audits = ctx.initial_audits

        self._advance(sm, PipelineState.ADJUDICATE)
        adjudication = await self._adjudicate(ctx)
        ctx.adjudication = adjudication
        logger.info(
            "Winner: %s | confidence %d | ambiguous %s",
            adjudication.winner,
            adjudication.confidence,
            adjudication.is_ambiguous,
        )

        self._advance(sm, PipelineState.COMPLETE)

        label = preliminary.label
        if adjudication.is_ambiguous:
            label = ConfidenceLabel.LOW

        tokens, cost = self._totals(ctx)
        refined = ctx.refined is not None
        consensus = ConsensusResult(
            final_answer=adjudication.final_answer,
            confidence_score=adjudication.confidence,
            confidence_label=label,
            agreement_matrix=preliminary.matrix,
            refinement_applied=refined,
            refinement_rounds=1 if refined else 0,
            total_tokens=tokens,
            total_cost_usd=cost,
            processing_time_ms=(time.monotonic() - start) * 1000,
            winner=adjudication.winner,
            is_ambiguous=adjudication.is_ambiguous,
            reasoning=adjudication.reasoning,
            dissent_note=adjudication.dissent_note,
        )
        return PipelineResult(
            message_id=correlation_id,
            user_prompt=ctx.question,
            initial_responses=tuple(ctx.responses.values()),
            critiques=tuple(ctx.critiques),
            refined_responses=(
                tuple(ctx.refined.values()) if ctx.refined is not None else None
            ),
            consensus=consensus,
            initial_audits=ctx.initial_audits,
            final_audits=ctx.final_audits,
        )

    # ── State helpers ────────────────────────────────────────────

    def _notify(self, state: PipelineState) -> None:
        if self._on_transition is not None:
            self._on_transition(state)

    def _advance(self, sm: PipelineStateMachine, to: PipelineState) -> None:
        sm.transition(to)
        self._notify(to)

    def _fail(self, sm: PipelineStateMachine, responded: int) -> NoReturn:
        err = InsufficientResponsesError(responded, len(self._gateways))
        sm.fail(str(err))
        self._notify(PipelineState.FAILED)
        raise err

    def _route(self, response: ProviderResponse) -> tuple[ProviderGateway, str | None]:
        """Gateway and model that produced ``response``'s slot."""
        if response.status == ResponseStatus.FALLBACK:
            return self._gateways.get(self._fallback_id), self._config.fallback_model
        return self._gateways.get(response.provider), None

    # ── Gather ───────────────────────────────────────────────────

    async def _gather_one(
        self, gateway: ProviderGateway, prompt: str
    ) -> ProviderResponse:
        pid = gateway.provider_id

        def _log_retry(attempt: int, delay: float, failed: ProviderResponse) -> None:
            logger.warning(
                "%s %s (%s), retry %d in %.1fs",
                pid,
                failed.status,
                failed.error,
                attempt,
                delay,
            )

        response = await retry_with_backoff(
            lambda: gateway.invoke(INITIAL_SYSTEM_PROMPT, prompt),
            self._retry,
            on_retry=_log_retry,
        )
        if response.has_content:
            return response
        if pid == self._fallback_id or self._fallback_id not in self._gateways:
            return response

        logger.warning("%s gave no answer, substituting %s", pid, self._fallback_id)
        substitute = await self._gateways.get(self._fallback_id).invoke(
            INITIAL_SYSTEM_PROMPT, prompt, model=self._config.fallback_model
        )
        if not substitute.has_content:
            return response
        return dataclasses.replace(
            substitute, provider=pid, status=ResponseStatus.FALLBACK
        )

    async def _gather(self, ctx: PipelineContext) -> None:
        results = await asyncio.gather(
            *(self._gather_one(g, ctx.question) for g in self._gateways)
        )
        ctx.responses = {r.provider: r for r in results}

    # ── Critique ─────────────────────────────────────────────────

    async def _critique_one(
        self, ctx: PipelineContext, reviewer: ProviderResponse
    ) -> list[Critique]:
        rqs = {a.provider: a.rqs for a in ctx.initial_audits}
        others = [
            ReviewTarget(r.provider, r.content, rqs.get(r.provider, 50))
            for r in ctx.responding
            if r.provider != reviewer.provider
        ]
        if not others:
            return []

        gateway, model = self._route(reviewer)
        reply = await gateway.invoke(
            "", build_critique_prompt(ctx.question, others), model=model
        )
        if not reply.has_content:
            logger.warning("%s returned no critique", reviewer.provider)
            return []

        parsed = parse_critique(
            reply.content, reviewer.provider, [t.provider for t in others]
        )
        return list(
            apportion_usage(parsed.critiques, reply.total_tokens, reply.cost_usd)
        )

    async def _critique(self, ctx: PipelineContext) -> None:
        results = await asyncio.gather(
            *(self._critique_one(ctx, r) for r in ctx.responding)
        )
        ctx.critiques = [c for batch in results for c in batch]

    # ── Refine ───────────────────────────────────────────────────

    async def _refine_one(
        self, ctx: PipelineContext, response: ProviderResponse
    ) -> tuple[ProviderResponse, ProviderResponse | None]:
        """Return (kept response, refinement call or None if not made)."""
        adverse = [
            c
            for c in ctx.critiques
            if c.reviewed == response.provider and c.vote != Vote.AGREE
        ]
        if not adverse:
            return response, None

        rqs = next(
            (a.rqs for a in ctx.initial_audits if a.provider == response.provider),
            50,
        )
        gateway, model = self._route(response)
        call = await gateway.invoke(
            "",
            build_refinement_prompt(ctx.question, response.content, adverse, rqs),
            model=model,
        )
        if not call.has_content:
            logger.warning("%s refinement empty, keeping answer", response.provider)
            return response, call

        status = (
            ResponseStatus.FALLBACK
            if response.status == ResponseStatus.FALLBACK
            else call.status
        )
        kept = dataclasses.replace(call, provider=response.provider, status=status)
        return kept, call

    async def _refine(self, ctx: PipelineContext) -> None:
        results = await asyncio.gather(
            *(self._refine_one(ctx, r) for r in ctx.responding)
        )
        ctx.refined = {kept.provider: kept for kept, _ in results}
        ctx.refinement_calls = [call for _, call in results if call is not None]

    # ── Adjudicate ───────────────────────────────────────────────

    async def _adjudicate(self, ctx: PipelineContext) -> Adjudication:
        responses = list((ctx.refined or ctx.responses).values())
        responses = [r for r in responses if r.has_content]

        if self._judge_id not in self._gateways:
            logger.warning("Judge %s not configured, using best RQS", self._judge_id)
            return fallback_adjudication(responses, ctx.final_audits)

        judge = self._gateways.get(self._judge_id)
        ctx.judge_response = await judge.invoke(
            JUDGE_SYSTEM_PROMPT,
            build_adjudication_prompt(ctx.question, ctx.final_audits, responses),
        )
        if not ctx.judge_response.has_content:
            logger.warning("Judge returned no content, using best RQS")
            return fallback_adjudication(responses, ctx.final_audits)
        return parse_adjudication(
            ctx.judge_response.content, responses, ctx.final_audits
        )

    # ── Accounting ───────────────────────────────────────────────

    @staticmethod
    def _totals(ctx: PipelineContext) -> tuple[int, float]:
        calls = [*ctx.responses.values(), *ctx.refinement_calls]
        if ctx.judge_response is not None:
            calls.append(ctx.judge_response)
        tokens = sum(r.total_tokens for r in calls) + sum(
            c.tokens_used for c in ctx.critiques
        )
        cost = sum(r.cost_usd for r in calls) + sum(c.cost_usd for c in ctx.critiques)
        return tokens, cost
