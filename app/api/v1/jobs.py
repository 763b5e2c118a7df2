from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, Field

from app.api.v1.deps import SCORING_ERRORS, get_runtime, raise_scoring_http_error
from app.core.rate_limit import rate_limit
from app.core.security import check_api_key
from app.schemas.ranking import RankingInfo, RankingJobStatus, RankingSummary
from app.services.ranker import get_ranking_info
from app.services.runtime import ScoringRuntime

router = APIRouter()


class PrivateDirectivesRequest(BaseModel):
    private_directives: str | None = Field(default=None, max_length=20000)


class ReanalysisResponse(BaseModel):
    job_id: str
    changed: bool
    succeeded: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    timed_out: list[str] = Field(default_factory=list)
    ranking: RankingSummary | None = None
    ranking_error: str | None = None
    ranking_deferred: bool = False


@router.post("/jobs/{job_id}/ranking", response_model=RankingSummary)
@rate_limit()
def rank_job(
    request: Request,
    job_id: str,
    runtime: ScoringRuntime = Depends(get_runtime),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    _ = request
    check_api_key(x_api_key)
    try:
        return runtime.orchestrator.rank_candidates_for_job(job_id)
    except SCORING_ERRORS as exc:
        raise_scoring_http_error(exc)


@router.get("/jobs/{job_id}/ranking-info", response_model=RankingInfo)
@rate_limit()
def ranking_info(
    request: Request,
    job_id: str,
    runtime: ScoringRuntime = Depends(get_runtime),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    _ = request
    check_api_key(x_api_key)
    try:
        return get_ranking_info(job_id, store=runtime.store)
    except SCORING_ERRORS as exc:
        raise_scoring_http_error(exc)


@router.get("/jobs/{job_id}/ranking-status", response_model=RankingJobStatus)
@rate_limit()
def ranking_status(
    request: Request,
    job_id: str,
    runtime: ScoringRuntime = Depends(get_runtime),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    _ = request
    check_api_key(x_api_key)
    return runtime.ranking_queue.status(job_id)


@router.post("/jobs/{job_id}/ranking-status/retry", response_model=RankingJobStatus)
@rate_limit()
def retry_ranking(
    request: Request,
    job_id: str,
    runtime: ScoringRuntime = Depends(get_runtime),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    _ = request
    check_api_key(x_api_key)
    try:
        return runtime.ranking_queue.retry(job_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.put("/jobs/{job_id}/private-directives", response_model=ReanalysisResponse)
@rate_limit("10/minute")
def update_private_directives(
    request: Request,
    job_id: str,
    payload: PrivateDirectivesRequest,
    runtime: ScoringRuntime = Depends(get_runtime),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    _ = request
    check_api_key(x_api_key)
    try:
        report = runtime.orchestrator.update_private_directives(job_id, payload.private_directives)
    except SCORING_ERRORS as exc:
        raise_scoring_http_error(exc)
    if report is None:
        return ReanalysisResponse(job_id=job_id, changed=False)
    return ReanalysisResponse(
        job_id=job_id,
        changed=True,
        succeeded=report.succeeded,
        failed=report.failed,
        timed_out=report.timed_out,
        ranking=report.ranking,
        ranking_error=report.ranking_error,
        ranking_deferred=report.ranking_deferred,
    )
