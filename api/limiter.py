"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (mounted with SlowAPIMiddleware) and by
api/routes/v1/users.py, which limits POST /login per client IP.

Counters live in Settings.rate_limit_storage_uri. The in-memory default is
per process; point it at redis:// when running several workers so they
share one count.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri=get_settings().rate_limit_storage_uri)
