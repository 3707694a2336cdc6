"""Rate limiting.

Wraps the slowapi limiter; tests get a no-op variant so fixtures stay deterministic.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from minilove.core.config import settings


class _NoOpLimiter:
    """Decorator-compatible limiter that never limits."""

    enabled = False

    def limit(self, *args, **kwargs):
        def decorator(func):
            return func

        return decorator


def build_limiter(environment: str, default_limit: str):
    if environment.lower() in ("test", "testing"):
        return _NoOpLimiter()
    return Limiter(key_func=get_remote_address, default_limits=[default_limit])


limiter = build_limiter(settings.environment, settings.rate_limit_default)

AUTH_LIMIT = "10/minute"
WRITE_LIMIT = "30/minute"
