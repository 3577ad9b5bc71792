"""Fixed-window request limiting for the download and info APIs."""

import math
import time
from threading import Lock
from typing import Dict, Optional, Tuple

from flask import Flask, Response, jsonify, request

from .constants import DEFAULT_RATE_LIMIT_REQUESTS, DEFAULT_RATE_LIMIT_WINDOW_SECONDS

# Health and metrics probes stay unthrottled.
LIMITED_PREFIXES = ("/api/download", "/api/info")


class FixedWindowRateLimiter:
    """Simple fixed-window rate limiter keyed by client identifier."""

    def __init__(self, max_requests: int, window_seconds: float, *, clock=time.time) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[int, float]] = {}
        self._lock = Lock()

    def allow(self, key: str) -> Tuple[bool, float]:
        """Count one hit for *key*; return (allowed, seconds until the window resets)."""
        now = self._clock()
        with self._lock:
            count, window_end = self._entries.get(key, (0, now + self.window_seconds))
            if now >= window_end:
                count = 0
                window_end = now + self.window_seconds
            count += 1
            self._entries[key] = (count, window_end)
            self._purge(now)
            allowed = count <= self.max_requests
            retry_after = max(0.0, window_end - now)
        return allowed, retry_after

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge(self, now: float) -> None:
        # keep the table from growing with one-off clients
        if len(self._entries) < 1024:
            return
        expired = [k for k, (_, end) in self._entries.items() if end <= now]
        for k in expired:
            del self._entries[k]


def install_rate_limit(app: Flask, config: dict) -> Optional[FixedWindowRateLimiter]:
    """Limit API requests per client address; returns the limiter or None when disabled."""
    rl_cfg = config.get("rate_limit", {})
    if not rl_cfg.get("enabled", True):
        return None

    limiter = FixedWindowRateLimiter(
        max_requests=int(rl_cfg.get("max_requests", DEFAULT_RATE_LIMIT_REQUESTS)),
        window_seconds=float(rl_cfg.get("window_seconds", DEFAULT_RATE_LIMIT_WINDOW_SECONDS)),
    )

    @app.before_request
    def _check_rate_limit() -> Optional[Response]:
        if not request.path.startswith(LIMITED_PREFIXES) or request.method == "OPTIONS":
            return None
        allowed, retry_after = limiter.allow(request.remote_addr or "unknown")
        if allowed:
            return None
        resp = jsonify(
            {
                "success": False,
                "error": "Too many requests. Try again later.",
                "code": "rate_limited",
            }
        )
        resp.status_code = 429
        resp.headers["Retry-After"] = str(int(math.ceil(retry_after)))
        return resp

    return limiter
