"""
NicheNav Backend: Auth Helpers

Callers sign in with Supabase Auth and send the access token as
`Authorization: Bearer <jwt>`. The token is resolved to a user id through
Supabase on every request; admins are the ids listed in ADMIN_USER_IDS.
"""

from fastapi import HTTPException, Request

from nichenav import db
from nichenav.config import settings

AUTH_HEADER = "Authorization"
BEARER_PREFIX = "bearer "


def get_bearer_token(request: Request) -> str | None:
    """Return the token from `Authorization: Bearer <token>`, or None."""
    header = request.headers.get(AUTH_HEADER, "").strip()
    if not header.lower().startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


async def get_current_user_id(request: Request) -> str | None:
    """Return the authenticated user's ID, or None if the token is missing or invalid."""
    token = get_bearer_token(request)
    if not token:
        return None
    user = await db.verify_access_token(token)
    return user["id"] if user else None


async def require_user_id(request: Request) -> str:
    """FastAPI dependency: 401 unless the request carries a valid access token."""
    user_id = await get_current_user_id(request)
    if not user_id:
        raise HTTPException(status_code=401, detail="Sign in to continue")
    return user_id


async def require_admin(request: Request) -> str:
    """FastAPI dependency: 403 unless the caller is listed in ADMIN_USER_IDS."""
    user_id = await require_user_id(request)
    if user_id not in settings.admin_ids:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user_id
