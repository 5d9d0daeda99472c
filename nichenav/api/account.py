"""
NicheNav Backend: Account API (GET /api/me)
"""

from fastapi import APIRouter, Depends, HTTPException

from nichenav import pipeline
from nichenav.auth import require_user_id
from nichenav.config import generate_error_code, log
from nichenav.errors import UpstreamFailure
from nichenav.models import UserAccount

router = APIRouter(prefix="/api/me", tags=["account"])


@router.get("", response_model=UserAccount)
async def get_me(user_id: str = Depends(require_user_id)) -> UserAccount:
    """GET /api/me: plan and report usage; the account is created on first call."""
    try:
        return await pipeline.get_or_create_account(user_id)
    except UpstreamFailure as e:
        code = generate_error_code()
        log("ERROR", "account load failed", user_id=user_id, error=str(e), error_code=code)
        raise HTTPException(
            status_code=502,
            detail={"message": "Failed to load your account. Please try again.", "error_code": code},
        )
