"""Main CLI application.

Click commands for the verdict pipeline: ask, score, providers, serve.
"""

from __future__ import annotations

import asyncio
import json as json_mod
import logging
import sys
import uuid
from typing import TYPE_CHECKING

import click

from verdict import __version__
from verdict.config.loader import load_config
from verdict.core.errors import ConfigError, InsufficientResponsesError, VerdictError
from verdict.providers.base import ProviderId

if TYPE_CHECKING:
    from typing import TextIO

    from verdict.cli.display import VerdictDisplay
    from verdict.config.schema import LoggingConfig, VerdictConfig
    from verdict.pipeline.machine import PipelineResult

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str) -> None:
    """Print an error message to stderr and exit."""
    click.echo(f"Error: {msg}", err=True)
    sys.exit(1)


def _load_config(config_path: str | None) -> VerdictConfig:
    """Load config with user-friendly error handling."""
    try:
        return load_config(path=config_path)
    except ConfigError as e:
        _error(str(e))
        raise  # unreachable, keeps mypy happy


def _setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger from config (stderr, or a file)."""
    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=_LOG_FORMAT,
        filename=config.file or None,
    )


def _show_result(display: VerdictDisplay, result: PipelineResult) -> None:
    consensus = result.consensus
    display.show_responses(result.initial_responses, result.initial_audits)
    display.show_matrix(consensus.agreement_matrix)
    display.show_refinement(consensus.refinement_applied, result.final_audits)
    display.show_final_decision(consensus)


# ── CLI group ────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="verdict")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """verdict - Reasoning-quality consensus across LLM providers.

    Ask several LLMs, let them critique each other, and keep the
    best-reasoned answer rather than the most popular one.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ── ask ──────────────────────────────────────────────────────────


@cli.command()
@click.argument("question")
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Print the full pipeline result as JSON.",
)
@click.option(
    "--judge",
    type=click.Choice([p.value for p in ProviderId]),
    default=None,
    help="Provider that adjudicates (overrides config).",
)
@click.pass_context
def ask(ctx: click.Context, question: str, as_json: bool, judge: str | None) -> None:
    """Run the decision pipeline on QUESTION.

    Every configured provider answers independently, reviews the
    others, and a judge picks the answer with the soundest reasoning.
    """
    from verdict.pipeline.sanitize import is_valid_prompt

    config = _load_config(ctx.obj["config_path"])
    _setup_logging(config.logging)
    if judge is not None:
        config.pipeline.judge_provider = judge

    if not is_valid_prompt(question):
        _error("Invalid prompt: need at least 3 characters.")

    try:
        result = asyncio.run(_ask_async(question, config, progress=not as_json))
    except InsufficientResponsesError as e:
        _error(f"{e}. Check API keys and provider status.")
        return  # unreachable
    except VerdictError as e:
        _error(str(e))
        return  # unreachable

    if as_json:
        click.echo(json_mod.dumps(result.to_dict(), indent=2))
        return

    from verdict.cli.display import VerdictDisplay

    _show_result(VerdictDisplay(), result)


async def _ask_async(
    question: str,
    config: VerdictConfig,
    *,
    progress: bool = True,
) -> PipelineResult:
    """Async implementation for the ask command."""
    from verdict.cli.display import VerdictDisplay
    from verdict.pipeline.orchestrator import PhaseOrchestrator
    from verdict.providers.registry import build_registry

    registry = build_registry(config)
    if not len(registry):
        _error(
            "No providers available. Configure providers in "
            "~/.config/verdict/config.toml or set API key environment variables."
        )

    display = VerdictDisplay()
    display.start()
    orchestrator = PhaseOrchestrator(
        registry,
        config.pipeline,
        on_transition=display.show_phase if progress else None,
    )
    return await orchestrator.run(question, str(uuid.uuid4()))


# ── score ────────────────────────────────────────────────────────


@cli.command()
@click.argument("file", type=click.File("r"), default="-")
@click.option(
    "--provider",
    type=click.Choice([p.value for p in ProviderId]),
    default=ProviderId.OPENAI.value,
    help="Provider label to attach to the audit.",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Print the audit as JSON.",
)
def score(file: TextIO, provider: str, as_json: bool) -> None:
    """Score the reasoning quality of an answer in FILE (or stdin).

    Runs locally; no provider is called.
    """
    from verdict.pipeline.scoring import score_response

    text = file.read()
    if not text.strip():
        _error("Nothing to score.")

    audit = score_response(text, ProviderId(provider))
    if as_json:
        click.echo(json_mod.dumps(audit.to_dict(), indent=2))
        return

    from verdict.cli.display import VerdictDisplay

    VerdictDisplay().show_audit(audit)


# ── providers ────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def providers(ctx: click.Context) -> None:
    """List providers, key status, models and pricing."""
    from verdict.cli.display import VerdictDisplay

    config = _load_config(ctx.obj["config_path"])
    VerdictDisplay().show_providers(config)


# ── serve ────────────────────────────────────────────────────────


@cli.command()
@click.option("--host", default=None, help="Bind host (overrides config).")
@click.option("--port", type=int, default=None, help="Bind port (overrides config).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the REST API server."""
    import uvicorn

    from verdict.api.app import create_app

    config = _load_config(ctx.obj["config_path"])
    _setup_logging(config.logging)

    effective_host = host or config.api.host
    effective_port = port or config.api.port
    click.echo(f"Serving on http://{effective_host}:{effective_port}")

    app = create_app(config)
    uvicorn.run(app, host=effective_host, port=effective_port)
