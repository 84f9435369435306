"""POST /api/consensus -- run the decision pipeline via REST."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from verdict.core.errors import InsufficientResponsesError, VerdictError
from verdict.pipeline.orchestrator import PhaseOrchestrator
from verdict.pipeline.sanitize import is_valid_prompt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["consensus"])


class ConsensusRequest(BaseModel):
    prompt: str
    correlation_id: str | None = None


@router.post("/consensus", response_model=None)
async def consensus(
    body: ConsensusRequest, request: Request
) -> dict[str, Any] | JSONResponse:
    """Answer one question with the full pipeline."""
    if not is_valid_prompt(body.prompt):
        return JSONResponse(status_code=400, content={"detail": "Invalid prompt"})

    config = request.app.state.config
    orchestrator = PhaseOrchestrator(request.app.state.gateways, config.pipeline)
    correlation_id = body.correlation_id or str(uuid.uuid4())

    try:
        result = await orchestrator.run(body.prompt, correlation_id)
    except InsufficientResponsesError as exc:
        logger.warning("Insufficient responses for %s: %s", correlation_id, exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})
    except VerdictError as exc:
        logger.exception("Pipeline error during /api/consensus")
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    return result.to_dict()
