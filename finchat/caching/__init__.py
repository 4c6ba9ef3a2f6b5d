"""Caching package."""

from finchat.caching.ttl_cache import (
    CacheEntry,
    ContextCache,
    ResponseCache,
    TTLCache,
    normalize_question,
)

__all__ = [
    "CacheEntry",
    "ContextCache",
    "ResponseCache",
    "TTLCache",
    "normalize_question",
]
