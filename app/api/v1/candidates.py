from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from app.api.v1.deps import SCORING_ERRORS, get_runtime, raise_scoring_http_error
from app.core.rate_limit import rate_limit
from app.core.security import check_api_key
from app.schemas.analysis import AnalysisSummary
from app.services.runtime import ScoringRuntime

router = APIRouter()


class AnalyzeRequest(BaseModel):
    use_llm: bool = True
    trigger_ranking: bool = True


@router.post("/candidates/{candidate_id}/analysis", response_model=AnalysisSummary)
@rate_limit()
def analyze_candidate(
    request: Request,
    candidate_id: str,
    payload: AnalyzeRequest | None = None,
    runtime: ScoringRuntime = Depends(get_runtime),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    _ = request
    check_api_key(x_api_key)
    options = payload or AnalyzeRequest()
    try:
        return runtime.orchestrator.analyze_application(
            candidate_id,
            use_llm=options.use_llm,
            trigger_ranking=options.trigger_ranking,
        )
    except SCORING_ERRORS as exc:
        raise_scoring_http_error(exc)


@router.get("/candidates/{candidate_id}/analysis", response_model=AnalysisSummary)
@rate_limit()
def get_candidate_analysis(
    request: Request,
    candidate_id: str,
    runtime: ScoringRuntime = Depends(get_runtime),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    _ = request
    check_api_key(x_api_key)
    summary = runtime.orchestrator.get_analysis_results(candidate_id)
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No analysis available for candidate {candidate_id}.",
        )
    return summary
