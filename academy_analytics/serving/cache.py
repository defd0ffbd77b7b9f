"""
Response Cache Module

In-process cache for read-only JSON responses:
- Keys built from method, path, user and the sorted query string
- Fixed lifetime per entry, checked lazily on read
- No size bound and no background eviction; the map lives as long as the
  process

Concurrent misses on the same key are not collapsed; each computes the
response and the last one stored wins.
"""

import functools
import time
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union
from urllib.parse import quote

import structlog
from fastapi import Request
from fastapi.encoders import jsonable_encoder

from academy_analytics.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Characters encodeURIComponent leaves alone
_UNRESERVED = "-_.!~*'()"

QueryParams = Union[Mapping, Iterable[Tuple[str, Any]]]


def _encode(value: Any) -> str:
    return quote("" if value is None else str(value), safe=_UNRESERVED)


def normalize_query(params: Optional[QueryParams]) -> str:
    """
    Percent-encoded key=value pairs sorted by key and joined with '&'.

    Repeated keys are folded into one comma-separated value.
    """
    if not params:
        return ""

    if hasattr(params, "multi_items"):
        pairs = params.multi_items()
    elif isinstance(params, Mapping):
        pairs = params.items()
    else:
        pairs = params

    grouped: Dict[str, list] = {}
    for key, value in pairs:
        grouped.setdefault(key, []).append("" if value is None else str(value))

    return "&".join(
        f"{_encode(key)}={_encode(','.join(grouped[key]))}" for key in sorted(grouped)
    )


def build_cache_key(
    method: str,
    path: str,
    query: Optional[QueryParams] = None,
    user: Any = None,
) -> str:
    """
    Cache key "METHOD:path:userId:role:query".

    The path loses a trailing slash. Without an authenticated user (an object
    with an integer id and a role) the user segment collapses to "::", so
    anonymous callers share entries.
    """
    method = method.upper()
    if path.endswith("/"):
        path = path[:-1]
    path = path or "/"
    query_string = normalize_query(query)

    user_id = getattr(user, "id", None)
    role = getattr(user, "role", None)
    if isinstance(user_id, int) and not isinstance(user_id, bool) and role:
        return f"{method}:{path}:{user_id}:{role}:{query_string}"
    return f"{method}:{path}::{query_string}"


class ResponseCache:
    """
    Key to body map with per-entry expiry.

    Example:
        cache = ResponseCache(default_ttl=60)
        cache.set(key, body)
        body = cache.get(key)
    """

    def __init__(
        self,
        default_ttl: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self._clock = clock
        self._store: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        """Stored body, or None when absent or expired (expired entries are dropped)."""
        entry = self._store.get(key)
        if entry is None:
            return None

        body, expires_at = entry
        if self._clock() > expires_at:
            del self._store[key]
            return None
        return body

    def set(self, key: str, body: Any, ttl: Optional[float] = None) -> None:
        """Store a body for ttl seconds (the default lifetime when omitted)."""
        lifetime = self.default_ttl if ttl is None else ttl
        self._store[key] = (body, self._clock() + lifetime)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


def cached(ttl: Optional[float] = None, cache: Optional[ResponseCache] = None):
    """
    Cache the JSON body of a GET endpoint.

    The endpoint must accept a ``request: Request`` parameter. A hit returns
    the stored body without calling the endpoint; a miss calls it, encodes
    its result and stores it. Other methods always reach the endpoint. The
    outcome (HIT, MISS or BYPASS) is left on request.state.cache_status.

    Example:
        @router.get("/global")
        @cached(ttl=60)
        async def global_metrics(request: Request):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            request: Request = kwargs["request"]
            store = cache if cache is not None else response_cache

            if request.method != "GET" or not settings.cache.enabled:
                request.state.cache_status = "BYPASS"
                return await func(*args, **kwargs)

            key = build_cache_key(
                request.method,
                request.url.path,
                request.query_params,
                getattr(request.state, "user", None),
            )

            body = store.get(key)
            if body is not None:
                logger.debug("Response cache hit", key=key)
                request.state.cache_status = "HIT"
                return body

            logger.debug("Response cache miss", key=key)
            request.state.cache_status = "MISS"
            body = jsonable_encoder(await func(*args, **kwargs))
            store.set(key, body, ttl)
            return body

        return wrapper
    return decorator


# Process-wide cache shared by the analytics routes
response_cache = ResponseCache(default_ttl=settings.cache.default_ttl_seconds)
