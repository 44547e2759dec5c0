from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

# Shared limiter instance, keyed by client address
limiter = Limiter(key_func=get_remote_address)

# Brute-force guard for the admin login form
LOGIN_RATE_LIMIT = "5/minute"

__all__ = [
    "limiter",
    "LOGIN_RATE_LIMIT",
    "RateLimitExceeded",
    "SlowAPIMiddleware",
]
