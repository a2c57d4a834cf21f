"""
Rate Limiting Configuration

Two layers of request throttling exist in the service:

- The shorten path is guarded by services.rate_limiter.RateLimiter, which
  reports remaining quota and reset time to the caller.
- Dashboard endpoints get a plain per-IP throttle from slowapi, configured
  here and applied with the @limiter.limit decorator.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from shortener.core.setting import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.API_RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Rate limit configurations per endpoint
# Format: "count/period" (e.g., "30/minute" means 30 requests per minute)
RATE_LIMITS = {
    "links": "30/minute",  # Dashboard listing and stats: 30 per minute per IP
    "delete": "30/minute",  # Link deletion: 30 per minute per IP
}
