"""
Shared slowapi limiter.

One instance serves app.state.limiter and the endpoint decorators so the
RATE_LIMIT_ENABLED switch applies everywhere.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit.enabled)
