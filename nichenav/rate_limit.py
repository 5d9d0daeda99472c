"""
NicheNav Backend: Rate Limiting

Per-IP slowapi limiter shared by the app factory and the routers.
Limits are applied per endpoint via decorator, not globally.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from nichenav.config import settings

ANALYZE_LIMIT = "10/minute"
REPORT_LIMIT = "5/minute"

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
