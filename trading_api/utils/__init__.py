"""Shared helpers for exchange adapters."""

from .rate_limiter import RateLimiter

__all__ = ["RateLimiter"]
