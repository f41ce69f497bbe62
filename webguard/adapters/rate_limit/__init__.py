"""Rate limiting adapters.

An abstract interface plus the in-memory throttle used by the HTTP layer.
"""

from webguard.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from webguard.adapters.rate_limit.in_memory import RequestThrottle, ThrottleEntry

__all__ = ["AbstractRateLimiter", "RateLimitResult", "RequestThrottle", "ThrottleEntry"]
