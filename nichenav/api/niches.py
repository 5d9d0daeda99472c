"""
NicheNav Backend: Niche API (POST /api/niches, GET /api/niches, GET /api/niches/{id})
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from nichenav import db, pipeline
from nichenav.auth import require_user_id
from nichenav.errors import NicheAnalysisError
from nichenav.model_settings import load_model_config
from nichenav.models import (
    AnalyzeRequest,
    ModelConfig,
    NicheAnalysisResult,
    NicheListResponse,
    NicheQuery,
)
from nichenav.rate_limit import ANALYZE_LIMIT, limiter

router = APIRouter(prefix="/api/niches", tags=["niches"])


@router.post("", status_code=201, response_model=NicheAnalysisResult)
@limiter.limit(ANALYZE_LIMIT)
async def analyze(
    request: Request,
    payload: AnalyzeRequest,
    user_id: str = Depends(require_user_id),
    model_config: ModelConfig = Depends(load_model_config),
) -> NicheAnalysisResult:
    """
    POST /api/niches

    Break a topic into micro-niches with trend series and save the analysis.
    Returns 502 with {message, error_code} if the model output is unusable or a call fails.
    """
    query = NicheQuery(topic=payload.topic, user_id=user_id)
    try:
        return await pipeline.analyze_niche(query, model_config)
    except NicheAnalysisError as e:
        raise HTTPException(status_code=502, detail={"message": e.message, "error_code": e.error_code})


@router.get("", response_model=NicheListResponse)
async def list_niches(user_id: str = Depends(require_user_id)) -> NicheListResponse:
    """GET /api/niches: the caller's analyses, newest first."""
    rows = await db.list_niche_analyses(user_id)
    return NicheListResponse(niches=[NicheAnalysisResult(**row) for row in rows])


@router.get("/{analysis_id}", response_model=NicheAnalysisResult)
async def get_niche(analysis_id: str, user_id: str = Depends(require_user_id)) -> NicheAnalysisResult:
    """GET /api/niches/{id}: 404 when missing or owned by another user."""
    row = await db.get_niche_analysis(analysis_id)
    if not row or row.get("user_id") != user_id:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return NicheAnalysisResult(**row)
