# agentdocs/auth.py
"""
Admin shared-secret check and pluggable rate-limiter.

Env vars:
- ADMIN_API_KEY: bearer token for /admin/* routes (unset: every admin call is rejected)
- RATE_LIMIT_ENABLED (default: false)
- RATE_LIMIT_PER_MINUTE (default: 60)
- REDIS_URL: optional, enables Redis-based distributed limiter
"""

import hmac
import os
import time
import threading
from typing import Optional, Tuple, Dict

import redis

from agentdocs import monitoring

# Configuration
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "").strip()
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "false").lower() in ("1", "true", "yes")
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
REDIS_URL = os.getenv("REDIS_URL", "")

BEARER_PREFIX = "Bearer "


class InMemoryFixedWindowLimiter:
    """Thread-safe in-memory fixed-window rate limiter (per-process)."""

    def __init__(self, limit_per_minute: int = 60):
        self.limit = limit_per_minute
        self._store: Dict[str, Tuple[int, int]] = {}  # key -> (window_minute, count)
        self._window = int(time.time()) // 60  # last window seen; older entries are pruned
        self._lock = threading.Lock()

    def allow_request(self, client_key: str) -> Tuple[bool, Optional[int]]:
        window = int(time.time()) // 60
        with self._lock:
            if window != self._window:
                self._store = {k: v for k, v in self._store.items() if v[0] >= window}
                self._window = window
            wstart, count = self._store.get(client_key, (window, 0))
            if wstart != window:
                count = 0
            if count >= self.limit:
                return False, 0
            self._store[client_key] = (window, count + 1)
            return True, self.limit - (count + 1)

    def reset(self):
        """Reset all state (useful for tests)."""
        with self._lock:
            self._store.clear()


class RedisFixedWindowLimiter:
    """Redis fixed-window counter using INCR + EXPIRE."""

    def __init__(self, redis_url: str, limit_per_minute: int = 60):
        self.limit = limit_per_minute
        self._client = redis.from_url(redis_url, decode_responses=True)

    def allow_request(self, client_key: str) -> Tuple[bool, Optional[int]]:
        window = int(time.time()) // 60
        key = f"rate:{client_key}:{window}"
        try:
            count = int(self._client.incr(key))
            if count == 1:
                self._client.expire(key, 120)
        except redis.RedisError as e:
            # Fail open on Redis errors
            monitoring.logger.warning("Rate limiter unavailable, allowing request", extra={"error": str(e)})
            return True, None
        if count > self.limit:
            return False, 0
        return True, self.limit - count


def _make_limiter():
    if REDIS_URL:
        return RedisFixedWindowLimiter(REDIS_URL, RATE_LIMIT_PER_MINUTE)
    return InMemoryFixedWindowLimiter(RATE_LIMIT_PER_MINUTE)


_rate_limiter = _make_limiter()


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip() or None


def is_admin_authorized(authorization: Optional[str]) -> bool:
    """Check an Authorization header against ADMIN_API_KEY."""
    token = bearer_token(authorization)
    if not token or not ADMIN_API_KEY:
        return False
    return hmac.compare_digest(token, ADMIN_API_KEY)


def check_rate_limit(client_key: str) -> Tuple[bool, Optional[int]]:
    """Check and consume quota. Returns (allowed, remaining)."""
    if not RATE_LIMIT_ENABLED:
        return True, None
    return _rate_limiter.allow_request(client_key or "anonymous")


def get_limiter():
    """Return the current limiter instance (for testing)."""
    return _rate_limiter
