"""
NicheNav Backend: Report API (POST /api/reports, GET /api/reports, GET /api/reports/{id}[/pdf])
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from nichenav import db, pipeline
from nichenav.auth import require_user_id
from nichenav.config import generate_error_code, log
from nichenav.errors import ReportGenerationError, ReportLimitReached
from nichenav.model_settings import load_model_config
from nichenav.models import ModelConfig, ReportListResponse, ReportRequest, ValidationReport
from nichenav.pdf import render_report_pdf, report_filename
from nichenav.rate_limit import REPORT_LIMIT, limiter

router = APIRouter(prefix="/api/reports", tags=["reports"])


async def _get_owned_report(report_id: str, user_id: str) -> ValidationReport:
    row = await db.get_validation_report(report_id)
    if not row or row.get("user_id") != user_id:
        raise HTTPException(status_code=404, detail="Report not found")
    return ValidationReport(**row)


@router.post("", status_code=201, response_model=ValidationReport)
@limiter.limit(REPORT_LIMIT)
async def generate_report(
    request: Request,
    payload: ReportRequest,
    user_id: str = Depends(require_user_id),
    model_config: ModelConfig = Depends(load_model_config),
) -> ValidationReport:
    """
    POST /api/reports

    Validate one micro-niche from an analysis and save the report.
    Returns 403 when a free account has no reports left, 502 on generation failure.
    """
    try:
        return await pipeline.generate_validation_report(
            niche_id=payload.niche_id,
            micro_niche=payload.micro_niche,
            user_id=user_id,
            model_config=model_config,
            topic=payload.topic,
        )
    except ReportLimitReached as e:
        raise HTTPException(
            status_code=403,
            detail={
                "message": "You've used all your free reports. Upgrade to premium for unlimited reports.",
                "reports_used": e.reports_used,
                "reports_limit": e.reports_limit,
            },
        )
    except ReportGenerationError as e:
        raise HTTPException(status_code=502, detail={"message": e.message, "error_code": e.error_code})


@router.get("", response_model=ReportListResponse)
async def list_reports(user_id: str = Depends(require_user_id)) -> ReportListResponse:
    """GET /api/reports: the caller's reports, newest first."""
    rows = await db.list_validation_reports(user_id)
    return ReportListResponse(reports=[ValidationReport(**row) for row in rows])


@router.get("/{report_id}", response_model=ValidationReport)
async def get_report(report_id: str, user_id: str = Depends(require_user_id)) -> ValidationReport:
    """GET /api/reports/{id}: 404 when missing or owned by another user."""
    return await _get_owned_report(report_id, user_id)


@router.get("/{report_id}/pdf")
async def download_report_pdf(report_id: str, user_id: str = Depends(require_user_id)) -> Response:
    """GET /api/reports/{id}/pdf: the report as a PDF attachment."""
    report = await _get_owned_report(report_id, user_id)
    try:
        content = render_report_pdf(report)
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "pdf render failed", user_id=user_id, report_id=report_id, error=str(e), error_code=code)
        raise HTTPException(
            status_code=500,
            detail={"message": "Failed to generate PDF report", "error_code": code},
        )

    log("INFO", "pdf rendered", user_id=user_id, report_id=report_id, size_bytes=len(content))
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(report)}"'},
    )
