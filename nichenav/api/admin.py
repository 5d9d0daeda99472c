"""
NicheNav Backend: Admin API (model settings, usage stats, user plans)

Every endpoint requires the caller to be listed in ADMIN_USER_IDS.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from nichenav import db
from nichenav.auth import require_admin
from nichenav.config import generate_error_code, log
from nichenav.errors import UpstreamFailure
from nichenav.model_settings import load_model_config, save_model_config
from nichenav.models import (
    ModelConfigUpdate,
    ModelConfigView,
    PlanUpdateRequest,
    UsageStats,
    UserAccount,
)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/model-settings", response_model=ModelConfigView)
async def get_model_settings() -> ModelConfigView:
    """GET /api/admin/model-settings: current config, api key masked."""
    return ModelConfigView.from_config(await load_model_config())


@router.put("/model-settings", response_model=ModelConfigView)
async def update_model_settings(payload: ModelConfigUpdate) -> ModelConfigView:
    """
    PUT /api/admin/model-settings

    Partial update; applies to every request that starts after it returns.
    """
    try:
        config = await save_model_config(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except UpstreamFailure as e:
        code = generate_error_code()
        log("ERROR", "model settings update failed", error=str(e), error_code=code)
        raise HTTPException(
            status_code=502,
            detail={"message": "Failed to save model settings.", "error_code": code},
        )
    return ModelConfigView.from_config(config)


@router.get("/stats", response_model=UsageStats)
async def get_stats() -> UsageStats:
    """GET /api/admin/stats: user counts per plan and total reports used."""
    return UsageStats(**await db.get_usage_stats())


@router.get("/users", response_model=list[UserAccount])
async def list_users() -> list[UserAccount]:
    """GET /api/admin/users: every account, newest first."""
    return [UserAccount(**row) for row in await db.list_users()]


@router.put("/users/{user_id}/plan", response_model=UserAccount)
async def update_user_plan(user_id: str, payload: PlanUpdateRequest) -> UserAccount:
    """PUT /api/admin/users/{id}/plan: 404 if the user does not exist."""
    row = await db.update_user_plan(user_id, payload.plan)
    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    log("INFO", "user plan updated", user_id=user_id, plan=payload.plan)
    return UserAccount(**row)
