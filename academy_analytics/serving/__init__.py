"""
Serving Module
"""
from .cache import ResponseCache, build_cache_key, cached, response_cache

__all__ = [
    "ResponseCache",
    "build_cache_key",
    "cached",
    "response_cache",
]
