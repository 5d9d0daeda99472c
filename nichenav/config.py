"""
NicheNav Backend: Central Configuration

All environment variables and default model settings live here.
Import `settings`, `DEFAULT_MODEL_CONFIG`, `log`, and `generate_error_code` from this module.
Do not read `os.environ` anywhere else.
"""

import uuid
from datetime import datetime, timezone

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All environment variables. Loaded from .env or the host's env vars."""

    # LLM Provider
    gemini_api_key: str

    # Database
    supabase_url: str
    supabase_service_key: str

    # App
    environment: str = "development"  # "development" | "production"
    cors_origins: str = "http://localhost:5173"  # Comma-separated for multiple origins
    admin_user_ids: str = ""  # Comma-separated user ids allowed on /api/admin
    rate_limit_enabled: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def admin_ids(self) -> set[str]:
        return {uid.strip() for uid in self.admin_user_ids.split(",") if uid.strip()}


# Singleton: import this everywhere
settings = Settings()


# ──────────────────────────────────────────────────────
# Logging Utilities
# ──────────────────────────────────────────────────────

def generate_error_code() -> str:
    """Generate a short, user-friendly error reference code.

    Format: 'NN-' followed by 6 uppercase hex characters.
    Example: 'NN-3F8A2C'

    The same code is logged on the backend AND returned to the user, so the user
    can quote it and the team can grep logs for it.
    """
    return f"NN-{uuid.uuid4().hex[:6].upper()}"


def log(level: str, message: str, **context) -> None:
    """Structured print-based logger.

    Every log line follows the format:
        [ISO_TIMESTAMP] [LEVEL] message | key1=value1 key2=value2

    Args:
        level: One of "INFO", "WARN", "ERROR".
        message: Human-readable description of what happened.
        **context: Arbitrary key-value pairs. Include user_id when available.

    Usage:
        log("INFO", "pipeline started", user_id="abc-123", pipeline="analyze")
        log("ERROR", "llm call failed", user_id="abc-123", model="gemini/gemini-2.5-flash",
            error_code="NN-3F8A2C", error=str(e))
    """
    ts = datetime.now(timezone.utc).isoformat()
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    print(f"[{ts}] [{level}] {message} | {ctx}", flush=True)


# ──────────────────────────────────────────────────────
# Model Configuration Defaults
# ──────────────────────────────────────────────────────

# Stored overrides (admin updates) are merged on top of these by model_settings.py.
DEFAULT_MODEL_CONFIG = {
    "model": "gemini/gemini-2.5-flash",
    "temperature": 0.1,
    "top_p": 0.7,
    "top_k": 10,
    "max_tokens": 8192,
    "system_instruction": (
        "You are NicheNav, a market research analyst who finds profitable micro-niches "
        "for entrepreneurs and validates them.\n\n"
        "Guidelines:\n"
        "- Base search volumes, competition levels and monetization scores on realistic market conditions.\n"
        "- Name real competitors, real market gaps and proven revenue models where you know them. "
        "Never invent placeholder data.\n"
        "- Give specific, actionable strategies with realistic timelines and budgets.\n"
        "- Output strictly valid JSON when instructed. No markdown code fences, no explanation text outside the JSON."
    ),
    "api_key": None,
}

LLM_CALL_TIMEOUT_SECONDS = 90
