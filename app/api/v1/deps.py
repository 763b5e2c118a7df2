from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, Request, status

from app.ai.gateway import LLMGatewayError
from app.core.record_store import RecordNotFoundError
from app.parsing.extract import ResumeTextExtractionError
from app.services.llm_json import LLMResponseFormatError
from app.services.orchestrator import AnalysisPreconditionError, CandidateNotFoundError
from app.services.runtime import ScoringRuntime

SCORING_ERRORS = (
    CandidateNotFoundError,
    AnalysisPreconditionError,
    RecordNotFoundError,
    LLMGatewayError,
    LLMResponseFormatError,
    ResumeTextExtractionError,
)


def get_runtime(request: Request) -> ScoringRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scoring runtime is not initialized.",
        )
    return runtime


def raise_scoring_http_error(exc: Exception) -> NoReturn:
    if isinstance(exc, RecordNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        raise HTTPException(status_code=status_code, detail=str(exc)) from exc
    raise exc
