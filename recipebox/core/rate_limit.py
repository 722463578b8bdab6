import os

from slowapi import Limiter
from slowapi.util import get_remote_address

# Initialize rate limiter - uses client IP address for rate limit key
# Disabled during testing (when DATABASE_URL contains 'test')
_is_testing = "test" in os.environ.get("DATABASE_URL", "").lower()
limiter = Limiter(key_func=get_remote_address, enabled=not _is_testing)

AUTH_RATE_LIMIT = "10/minute"
