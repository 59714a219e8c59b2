"""Request guards shared by the authentication endpoints."""

from __future__ import annotations

import os
import threading
import time
from collections import defaultdict, deque
from typing import Callable, Deque, DefaultDict, Dict, Tuple

from fastapi import HTTPException, Request


def _normalize_origin(value: str) -> str:
    return value.rstrip("/").lower()


TRUSTED_ORIGINS = tuple(
    _normalize_origin(entry)
    for entry in os.getenv("TRUSTED_ORIGINS", "").split(",")
    if entry.strip()
)

# scope -> (max attempts, window in seconds)
RATE_LIMITS: Dict[str, Tuple[int, int]] = {
    "login": (5, 60),
    "signup": (3, 300),
    "password_reset": (3, 300),
    "password_update": (5, 300),
}

_RATE_LOCK = threading.Lock()
_RATE_BUCKETS: DefaultDict[str, Deque[float]] = defaultdict(deque)


def get_client_ip(request: Request) -> str:
    """Best effort extraction of the requester IP address."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidate = forwarded.split(",")[0].strip()
        if candidate:
            return candidate
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def enforce_same_origin(request: Request) -> None:
    """Block cross-site form posts unless the origin is explicitly trusted."""

    origin = request.headers.get("origin")
    if not origin:
        return
    normalized_origin = _normalize_origin(origin)
    if normalized_origin in TRUSTED_ORIGINS:
        return
    host = request.headers.get("host")
    scheme = request.url.scheme or "http"
    if host and normalized_origin == _normalize_origin(f"{scheme}://{host}"):
        return
    raise HTTPException(status_code=403, detail="Origem da requisição não autorizada.")


def rate_limit_request(request: Request, *, scope: str) -> None:
    """Apply an in-memory sliding window per client IP and scope."""

    limit, window_seconds = RATE_LIMITS[scope]
    identifier = f"{scope}:{get_client_ip(request)}"
    now = time.monotonic()
    with _RATE_LOCK:
        bucket = _RATE_BUCKETS[identifier]
        while bucket and now - bucket[0] > window_seconds:
            bucket.popleft()
        if len(bucket) >= limit:
            raise HTTPException(status_code=429, detail="Muitas tentativas. Tente novamente mais tarde.")
        bucket.append(now)


def auth_guard(scope: str) -> Callable[[Request], None]:
    """Build a dependency running the origin check and the rate limit for a scope."""

    if scope not in RATE_LIMITS:
        raise ValueError(f"Unknown rate limit scope: {scope}")

    def _guard(request: Request) -> None:
        enforce_same_origin(request)
        rate_limit_request(request, scope=scope)

    return _guard


def reset_rate_limits() -> None:
    with _RATE_LOCK:
        _RATE_BUCKETS.clear()


__all__ = ["auth_guard", "enforce_same_origin", "rate_limit_request", "get_client_ip", "reset_rate_limits"]
