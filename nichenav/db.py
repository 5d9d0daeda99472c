"""
NicheNav Backend: Database Operations

All Supabase/PostgreSQL operations: niche analyses, validation reports,
user accounts and report usage, stored model settings, access tokens.

Helpers log failures and return an empty value ("" / None / []); callers
decide whether that is fatal. Account reads are the exception: a failed
read raises UpstreamFailure so it is never mistaken for a missing user.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from supabase import Client, create_client

from nichenav.config import generate_error_code, log, settings
from nichenav.errors import UpstreamFailure
from nichenav.models import FREE_REPORTS_LIMIT, PREMIUM_REPORTS_LIMIT

NICHE_ANALYSES_TABLE = "niche_analyses"
VALIDATION_REPORTS_TABLE = "validation_reports"
USERS_TABLE = "users"
APP_SETTINGS_TABLE = "app_settings"
MODEL_SETTINGS_KEY = "model"

# Compare-and-set attempts for the usage counter before giving up
INCREMENT_ATTEMPTS = 5

# ─────────────────────────────────────────────────────────────────────────────
# Supabase Client (singleton)
# ─────────────────────────────────────────────────────────────────────────────

_supabase: Client | None = None


def get_supabase() -> Client:
    """Return the Supabase client singleton. Creates it on first call."""
    global _supabase
    if _supabase is None:
        _supabase = create_client(settings.supabase_url, settings.supabase_service_key)
    return _supabase


def _first_row(response) -> Optional[dict]:
    if response is None or not response.data:
        return None
    row = response.data[0] if isinstance(response.data, list) else response.data
    return dict(row)


def _select_one(table: str, column: str, value: str, columns: str = "*") -> Optional[dict]:
    """First row where column == value, or None when nothing matches. Errors propagate."""
    response = get_supabase().table(table).select(columns).eq(column, value).limit(1).execute()
    return _first_row(response)


# ─────────────────────────────────────────────────────────────────────────────
# Access Tokens (Supabase Auth)
# ─────────────────────────────────────────────────────────────────────────────


async def verify_access_token(token: str) -> Optional[dict]:
    """
    Resolve a Supabase Auth access token to {"id", "email"}.
    Returns None when the token is invalid, expired, or the lookup fails.
    """
    try:
        response = get_supabase().auth.get_user(token)
    except Exception as e:
        log("WARN", "access token rejected", error=str(e))
        return None
    user = getattr(response, "user", None)
    if user is None or not getattr(user, "id", None):
        return None
    return {"id": str(user.id), "email": getattr(user, "email", None)}


# ─────────────────────────────────────────────────────────────────────────────
# Niche Analyses
# ─────────────────────────────────────────────────────────────────────────────


async def create_niche_analysis(record: dict) -> str:
    """
    Insert one analysis (micro_niches stored as jsonb).
    Returns the generated id, or "" on failure.
    """
    try:
        sb = get_supabase()
        data = {k: v for k, v in record.items() if k != "id"}
        response = sb.table(NICHE_ANALYSES_TABLE).insert(data).execute()
        row = _first_row(response)
        return str(row["id"]) if row else ""
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db write failed", operation="create_niche_analysis", error=str(e), error_code=code)
        return ""


async def list_niche_analyses(user_id: str) -> list[dict]:
    """A user's analyses, newest first."""
    try:
        sb = get_supabase()
        response = (
            sb.table(NICHE_ANALYSES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("timestamp", desc=True)
            .execute()
        )
        return [dict(r) for r in (response.data or [])]
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db read failed", user_id=user_id, operation="list_niche_analyses", error=str(e), error_code=code)
        return []


async def get_niche_analysis(analysis_id: str) -> Optional[dict]:
    try:
        return _select_one(NICHE_ANALYSES_TABLE, "id", analysis_id)
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db read failed", operation="get_niche_analysis", error=str(e), error_code=code)
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Validation Reports
# ─────────────────────────────────────────────────────────────────────────────


async def create_validation_report(record: dict) -> str:
    """
    Insert one validation report. niche_id is stored as given, never checked.
    Returns the generated id, or "" on failure.
    """
    try:
        sb = get_supabase()
        data = {k: v for k, v in record.items() if k != "id"}
        response = sb.table(VALIDATION_REPORTS_TABLE).insert(data).execute()
        row = _first_row(response)
        return str(row["id"]) if row else ""
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db write failed", operation="create_validation_report", error=str(e), error_code=code)
        return ""


async def list_validation_reports(user_id: str) -> list[dict]:
    """A user's reports, newest first."""
    try:
        sb = get_supabase()
        response = (
            sb.table(VALIDATION_REPORTS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("generated_at", desc=True)
            .execute()
        )
        return [dict(r) for r in (response.data or [])]
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db read failed", user_id=user_id, operation="list_validation_reports", error=str(e), error_code=code)
        return []


async def get_validation_report(report_id: str) -> Optional[dict]:
    try:
        return _select_one(VALIDATION_REPORTS_TABLE, "id", report_id)
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db read failed", operation="get_validation_report", error=str(e), error_code=code)
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Users & Report Usage
# ─────────────────────────────────────────────────────────────────────────────


async def get_user(user_id: str) -> Optional[dict]:
    """
    The user's account row, or None if no such user exists.

    Raises:
        UpstreamFailure: the read itself failed.
    """
    try:
        return _select_one(USERS_TABLE, "id", user_id)
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db read failed", user_id=user_id, operation="get_user", error=str(e), error_code=code)
        raise UpstreamFailure("Could not read user account") from e


async def create_user(user_id: str, email: str | None = None) -> Optional[dict]:
    """
    Create a free account unless one already exists, then return the stored row.

    An existing row is never overwritten. Returns None on failure.
    """
    try:
        sb = get_supabase()
        data = {
            "id": user_id,
            "email": email,
            "plan": "free",
            "reports_used": 0,
            "reports_limit": FREE_REPORTS_LIMIT,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        sb.table(USERS_TABLE).upsert(data, on_conflict="id", ignore_duplicates=True).execute()
        return _select_one(USERS_TABLE, "id", user_id)
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db write failed", user_id=user_id, operation="create_user", error=str(e), error_code=code)
        return None


async def list_users() -> list[dict]:
    """All accounts, newest first. Empty list on failure."""
    try:
        sb = get_supabase()
        response = sb.table(USERS_TABLE).select("*").order("created_at", desc=True).execute()
        return [dict(r) for r in (response.data or [])]
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db read failed", operation="list_users", error=str(e), error_code=code)
        return []


async def increment_reports_used(user_id: str) -> Optional[int]:
    """
    Add one to reports_used and return the new count.

    The write only lands if the counter still holds the value just read, so
    concurrent increments re-read instead of overwriting each other.
    Logs and returns None on failure; never raises.
    """
    try:
        sb = get_supabase()
        for _ in range(INCREMENT_ATTEMPTS):
            row = _select_one(USERS_TABLE, "id", user_id, columns="reports_used")
            if row is None:
                log("WARN", "report usage update skipped, no account", user_id=user_id)
                return None
            current = int(row.get("reports_used") or 0)
            response = (
                sb.table(USERS_TABLE)
                .update({"reports_used": current + 1})
                .eq("id", user_id)
                .eq("reports_used", current)
                .execute()
            )
            if response.data:
                return current + 1
        log("WARN", "report usage update contended", user_id=user_id, attempts=INCREMENT_ATTEMPTS)
        return None
    except Exception as e:
        log("WARN", "report usage update failed", user_id=user_id, error=str(e))
        return None


async def update_user_plan(user_id: str, plan: str) -> Optional[dict]:
    """
    Switch an account between free and premium.
    Returns the updated row, or None if the user does not exist or the write failed.
    """
    try:
        sb = get_supabase()
        data: dict[str, Any] = {
            "plan": plan,
            "reports_limit": PREMIUM_REPORTS_LIMIT if plan == "premium" else FREE_REPORTS_LIMIT,
        }
        if plan == "premium":
            data["plan_started_at"] = datetime.now(timezone.utc).isoformat()
        response = sb.table(USERS_TABLE).update(data).eq("id", user_id).execute()
        return _first_row(response)
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db write failed", user_id=user_id, operation="update_user_plan", error=str(e), error_code=code)
        return None


async def get_usage_stats() -> dict:
    """Count users per plan and total reports used. Zeros on failure."""
    stats = {"total_users": 0, "free_users": 0, "premium_users": 0, "total_reports": 0}
    try:
        sb = get_supabase()
        response = sb.table(USERS_TABLE).select("plan, reports_used").execute()
        for row in response.data or []:
            stats["total_users"] += 1
            stats["total_reports"] += int(row.get("reports_used") or 0)
            if row.get("plan") == "premium":
                stats["premium_users"] += 1
            else:
                stats["free_users"] += 1
        return stats
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db read failed", operation="get_usage_stats", error=str(e), error_code=code)
        return {"total_users": 0, "free_users": 0, "premium_users": 0, "total_reports": 0}


# ─────────────────────────────────────────────────────────────────────────────
# Model Settings
# ─────────────────────────────────────────────────────────────────────────────


async def get_model_settings() -> dict:
    """
    Stored model overrides (may be partial). Empty dict if none saved or on failure.
    """
    try:
        row = _select_one(APP_SETTINGS_TABLE, "key", MODEL_SETTINGS_KEY, columns="value")
        if row and row.get("value"):
            return dict(row["value"])
        return {}
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db read failed", operation="get_model_settings", error=str(e), error_code=code)
        return {}


async def update_model_settings(values: dict) -> bool:
    """Upsert the full override dict. Returns False on failure."""
    try:
        sb = get_supabase()
        data = {
            "key": MODEL_SETTINGS_KEY,
            "value": values,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        sb.table(APP_SETTINGS_TABLE).upsert(data, on_conflict="key").execute()
        return True
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "db write failed", operation="update_model_settings", error=str(e), error_code=code)
        return False
