"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and
api/routes/users.py (to apply the sign-in limit with @limiter.limit()).

A single shared instance keeps one in-memory counter store for the whole
app; per-module instances would each count separately and never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

# Read once at import; the limit applies per client IP.
LOGIN_RATE_LIMIT = get_settings().login_rate_limit
