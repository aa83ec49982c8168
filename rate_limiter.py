# rate_limiter.py
import math
import time
import threading
import logging
from datetime import datetime, timezone
from functools import wraps

from flask import make_response, request

import settings
from error_handler import RateLimitError

log = logging.getLogger(__name__)

CLEANUP_INTERVAL = 5 * 60  # seconds


class RateLimiter:
    """Fixed-window request counter keyed by client identifier."""

    def __init__(self, max_requests: int, window_ms: int, clock=time.time):
        self.max_requests = max_requests
        self.window = window_ms / 1000.0
        self._clock = clock
        self._store: dict[str, dict] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def cleanup(self) -> None:
        now = self._clock()
        with self._lock:
            for key in [k for k, rec in self._store.items() if rec["reset_time"] <= now]:
                del self._store[key]
            self._last_cleanup = now

    def reset(self) -> None:
        with self._lock:
            self._store.clear()

    def is_allowed(self, identifier: str) -> dict:
        now = self._clock()
        if now - self._last_cleanup >= CLEANUP_INTERVAL:
            self.cleanup()

        with self._lock:
            record = self._store.get(identifier)
            if record is None or record["reset_time"] <= now:
                record = {"count": 0, "reset_time": now + self.window}
                self._store[identifier] = record

            if record["count"] >= self.max_requests:
                return {
                    "allowed": False,
                    "remaining": 0,
                    "reset_time": record["reset_time"],
                    "retry_after": max(1, math.ceil(record["reset_time"] - now)),
                }

            record["count"] += 1
            return {
                "allowed": True,
                "remaining": self.max_requests - record["count"],
                "reset_time": record["reset_time"],
            }


def get_identifier(req) -> str:
    forwarded = req.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = (
            req.headers.get("X-Real-IP")
            or req.headers.get("CF-Connecting-IP")
            or req.remote_addr
            or "unknown"
        )
    user_agent = (req.headers.get("User-Agent") or "")[:50]
    auth = ":auth" if req.headers.get("Authorization") else ""
    return f"{ip}:{user_agent}{auth}"


def rate_limit(limiter: RateLimiter):
    """Decorator for Flask views; raises RateLimitError once the window is used up."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            # preflight requests are not counted
            if request.method == "OPTIONS":
                return view(*args, **kwargs)
            identifier = get_identifier(request)
            result = limiter.is_allowed(identifier)
            if not result["allowed"]:
                log.warning("Rate limit hit for %s on %s", identifier.split(":")[0], request.path)
                raise RateLimitError("Too many requests", retry_after=result["retry_after"])

            resp = make_response(view(*args, **kwargs))
            resp.headers["X-RateLimit-Limit"] = str(limiter.max_requests)
            resp.headers["X-RateLimit-Remaining"] = str(result["remaining"])
            resp.headers["X-RateLimit-Reset"] = datetime.fromtimestamp(
                result["reset_time"], tz=timezone.utc
            ).isoformat()
            return resp
        return wrapped
    return decorator


general_limiter = RateLimiter(**settings.RATE_LIMITS["GENERAL"])
auth_limiter = RateLimiter(**settings.RATE_LIMITS["AUTH"])
ai_limiter = RateLimiter(**settings.RATE_LIMITS["AI"])
