"""
Security module - Authentication and request limiting
"""

from .rate_limiter import RateLimiter, RateLimitDecision

__all__ = [
    "RateLimiter",
    "RateLimitDecision",
]
