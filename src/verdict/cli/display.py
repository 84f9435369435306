"""Rich display for pipeline visualization.

Renders phase progress, the initial answers with their reasoning
scores, the agreement matrix and the final decision.  Used by the
``ask`` and ``score`` commands.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from verdict.pipeline.machine import PipelineState, Vote
from verdict.providers.base import DEFAULT_MODELS, ProviderId, ResponseStatus
from verdict.providers.registry import pricing_for

if TYPE_CHECKING:
    from collections.abc import Sequence

    from verdict.config.schema import VerdictConfig
    from verdict.pipeline.machine import (
        AgreementMatrix,
        ConsensusResult,
        ReasoningAudit,
    )
    from verdict.providers.base import ProviderResponse

_TRUNCATE_LEN = 500

_PHASE_LABELS: dict[PipelineState, str] = {
    PipelineState.GATHER: "querying providers",
    PipelineState.SCORE: "scoring reasoning quality",
    PipelineState.CRITIQUE: "cross-review",
    PipelineState.DECIDE: "deciding on refinement",
    PipelineState.REFINE: "refining answers",
    PipelineState.ADJUDICATE: "adjudicating",
    PipelineState.COMPLETE: "done",
    PipelineState.FAILED: "failed",
}

_VOTE_STYLES: dict[Vote, str] = {
    Vote.AGREE: "green",
    Vote.PARTIAL: "yellow",
    Vote.DISAGREE: "red",
}


def _truncate(text: str, limit: int = _TRUNCATE_LEN) -> str:
    """Truncate text to *limit* characters with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + " ..."


def _rqs_style(rqs: int) -> str:
    if rqs > 70:
        return "green"
    if rqs >= 50:
        return "yellow"
    return "red"


class VerdictDisplay:
    """Rich display for one pipeline run.

    Accepts an optional :class:`~rich.console.Console` for dependency
    injection in tests.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()
        self._start_time: float = 0.0

    # ── Lifecycle ─────────────────────────────────────────────

    def start(self) -> None:
        """Record the start time for elapsed calculations."""
        self._start_time = time.monotonic()

    @property
    def elapsed(self) -> float:
        """Seconds elapsed since :meth:`start` was called."""
        if self._start_time == 0.0:
            return 0.0
        return time.monotonic() - self._start_time

    # ── Progress ──────────────────────────────────────────────

    def show_phase(self, state: PipelineState) -> None:
        """Print a progress line for a newly entered state."""
        label = _PHASE_LABELS.get(state)
        if label is None:
            return
        style = "bold red" if state == PipelineState.FAILED else "bold cyan"
        self._console.print(
            f"[{style}]{state.value.upper()}[/{style}] {label}", highlight=False
        )

    # ── Phase results ─────────────────────────────────────────

    def show_responses(
        self,
        responses: Sequence[ProviderResponse],
        audits: Sequence[ReasoningAudit],
    ) -> None:
        """One panel per provider answer, titled with its RQS."""
        by_provider = {a.provider: a for a in audits}
        for r in responses:
            audit = by_provider.get(r.provider)
            if audit is None:
                self._console.print(
                    f"[dim]{r.provider}: no answer ({r.status})[/dim]"
                )
                continue
            style = _rqs_style(audit.rqs)
            title = f"[bold]{r.provider}[/bold] RQS [{style}]{audit.rqs}[/{style}]"
            if r.status == ResponseStatus.FALLBACK:
                title += " [dim](fallback)[/dim]"
            subtitle = ", ".join(audit.flags) or None
            self._console.print(
                Panel(
                    Text(_truncate(r.content)),
                    title=title,
                    subtitle=subtitle,
                    border_style=style,
                )
            )

    def show_matrix(self, matrix: AgreementMatrix) -> None:
        """Display reviewer -> reviewed votes."""
        if not matrix:
            return
        lines: list[Text] = []
        for reviewer, votes in matrix.items():
            line = Text(f"{reviewer:<11}", style="bold")
            for reviewed, vote in votes.items():
                line.append(f" {reviewed}:")
                line.append(vote.value, style=_VOTE_STYLES[vote])
            lines.append(line)
        self._console.print(
            Panel(
                Text("\n").join(lines),
                title="[bold yellow]Agreement[/bold yellow]",
                border_style="yellow",
            )
        )

    def show_refinement(self, applied: bool, audits: Sequence[ReasoningAudit]) -> None:
        if not applied:
            self._console.print("[dim]Refinement skipped[/dim]")
            return
        scores = ", ".join(f"{a.provider}:{a.rqs}" for a in audits)
        self._console.print(f"[bold blue]Refined[/bold blue] RQS now {scores}")

    def show_final_decision(self, consensus: ConsensusResult) -> None:
        """Display the final decision (full, untruncated) and run stats."""
        self._console.print()
        self._console.rule(style="bright_white")
        self._console.print(
            Panel(
                Text(consensus.final_answer),
                title=(
                    "[bold bright_white]Decision[/bold bright_white]"
                    f" ({consensus.winner})"
                ),
                border_style="bright_white",
            )
        )
        parts = [
            f"Confidence: {consensus.confidence_score}% ({consensus.confidence_label})",
            f"{consensus.total_tokens:,} tokens",
            f"${consensus.total_cost_usd:.4f}",
            f"{consensus.processing_time_ms / 1000:.1f}s",
        ]
        self._console.print(" | ".join(parts), highlight=False)
        if consensus.is_ambiguous:
            self._console.print(
                "[bold yellow]Question flagged as ambiguous[/bold yellow]"
            )

        if consensus.reasoning:
            self._console.print()
            self._console.print(Text(consensus.reasoning, style="dim"))

        if consensus.dissent_note:
            self._console.print()
            self._console.print(
                Panel(
                    Text(consensus.dissent_note),
                    title="[bold yellow]Dissent[/bold yellow]",
                    border_style="yellow",
                )
            )

    # ── Local scoring ─────────────────────────────────────────

    def show_audit(self, audit: ReasoningAudit) -> None:
        """Display a standalone reasoning audit with its breakdown."""
        b = audit.breakdown
        style = _rqs_style(audit.rqs)
        body = "\n".join(
            [
                f"Reasoning depth:        {b.reasoning:.0f}",
                f"Conclusion clarity:     {b.conclusion:.0f}",
                f"Uncertainty handling:   {b.uncertainty:.0f}",
                f"Confidence calibration: {b.confidence:.0f}",
                f"Coherence:              {b.coherence:.0f}",
                "",
                f"Reasoning steps: {len(audit.reasoning_steps)}",
                f"Flags: {', '.join(audit.flags) or 'none'}",
                f"Conclusion: {_truncate(audit.conclusion, 200)}",
            ]
        )
        self._console.print(
            Panel(
                Text(body),
                title=f"[bold]RQS[/bold] [{style}]{audit.rqs}/100[/{style}]",
                border_style=style,
            ),
            highlight=False,
        )

    # ── Providers ─────────────────────────────────────────────

    def show_providers(self, config: VerdictConfig) -> None:
        """List providers with key status, model and pricing."""
        for pid in ProviderId:
            pcfg = config.providers.get(pid.value)
            if pcfg is None or not pcfg.enabled:
                self._console.print(f"[dim]{pid}: disabled[/dim]")
                continue
            key = "[green]key set[/green]" if pcfg.api_key else "[red]no key[/red]"
            pricing = pricing_for(pid, pcfg)
            self._console.print(
                f"[bold]{pid}[/bold]  {key}  {pcfg.model or DEFAULT_MODELS[pid]}  "
                f"in:${pricing.input_cost_per_mtok}/Mtok  "
                f"out:${pricing.output_cost_per_mtok}/Mtok",
                highlight=False,
            )
