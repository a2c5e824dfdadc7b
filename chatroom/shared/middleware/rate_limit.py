# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps

from flask import Flask, Request, current_app, jsonify, request

from chatroom.shared.config import SecurityConfig
from chatroom.shared.logging import logger

_EXTENSION_KEY = "chatroom.rate_limiters"


@dataclass
class Bucket:
    timestamps: deque[float]


class InMemoryRateLimiter:
    def __init__(self, limit: int, window_seconds: float) -> None:
        self._limit = max(1, int(limit))
        self._window = max(0.1, float(window_seconds))
        self._lock = threading.Lock()
        self._buckets: dict[str, Bucket] = defaultdict(lambda: Bucket(deque(maxlen=self._limit)))

    def allow(self, key: str) -> bool:
        now = time.monotonic()
        with self._lock:
            bucket = self._buckets[key]
            # Drop old
            while bucket.timestamps and (now - bucket.timestamps[0]) > self._window:
                bucket.timestamps.popleft()
            if len(bucket.timestamps) >= self._limit:
                return False
            bucket.timestamps.append(now)
            return True


def _client_key(req: Request) -> str:
    forwarded = req.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    return forwarded or (req.remote_addr or "unknown")


def configure_rate_limiting(app: Flask, security: SecurityConfig) -> None:
    app.extensions[_EXTENSION_KEY] = {
        "enabled": security.enable_rate_limit,
        "default_limit": security.rate_limit_requests,
        "default_window": security.rate_limit_window,
        "limiters": {},
        "lock": threading.Lock(),
    }


def _limiter_for(name: str, limit: int | None, window_seconds: float | None) -> InMemoryRateLimiter | None:
    state = current_app.extensions.get(_EXTENSION_KEY)
    if not state or not state["enabled"]:
        return None
    with state["lock"]:
        limiter = state["limiters"].get(name)
        if limiter is None:
            limiter = InMemoryRateLimiter(
                limit or state["default_limit"],
                window_seconds or state["default_window"],
            )
            state["limiters"][name] = limiter
        return limiter


def rate_limit(limit: int | None = None, window_seconds: float | None = None):
    """Per-application sliding window limit keyed by path and client address."""

    def decorator(f: Callable):
        @wraps(f)
        def wrapper(*args, **kwargs):
            limiter = _limiter_for(f.__qualname__, limit, window_seconds)
            if limiter is not None:
                key = f"{request.path}:{_client_key(request)}"
                if not limiter.allow(key):
                    logger.warning(f"rate_limit: rejected {request.method} {request.path}")
                    return jsonify({"error": "rate_limited"}), 429
            return f(*args, **kwargs)

        return wrapper

    return decorator


__all__ = ["InMemoryRateLimiter", "configure_rate_limiting", "rate_limit"]
