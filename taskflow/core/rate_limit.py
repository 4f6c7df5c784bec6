"""Per-process token bucket rate limiting for the API routers.

Buckets are keyed by caller (bearer token hash, else client address) and by
top-level API group, so a burst of card moves does not throttle automation
management for the same user. Limits are off in dev unless
``RATE_LIMIT_ENABLED`` says otherwise.
"""

from __future__ import annotations

import hashlib
import os
import threading
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Request


@dataclass(frozen=True)
class RateLimitPolicy:
    enabled: bool
    rps: float
    burst: int

    @classmethod
    def from_env(cls) -> "RateLimitPolicy":
        raw = (os.getenv("RATE_LIMIT_ENABLED") or "").strip().lower()
        if raw in {"1", "true", "yes"}:
            enabled = True
        elif raw in {"0", "false", "no"}:
            enabled = False
        else:
            enabled = (os.getenv("TASKFLOW_ENV") or os.getenv("APP_ENV") or "dev").strip().lower() == "prod"
        return cls(
            enabled=enabled,
            rps=max(_float_env("RATE_LIMIT_RPS", 5.0), 0.1),
            burst=max(int(_float_env("RATE_LIMIT_BURST", 20)), 1),
        )


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def rate_limit_enabled() -> bool:
    return RateLimitPolicy.from_env().enabled


def _path_group(path: str) -> str:
    parts = [p for p in path.split("/") if p]
    if parts[:2] == ["api", "v1"] and len(parts) >= 3:
        return f"/api/v1/{parts[2]}"
    return f"/{parts[0]}" if parts else "/"


def _caller(request: Request, authorization: Optional[str]) -> str:
    if authorization:
        return hashlib.sha256(authorization.encode("utf-8")).hexdigest()[:16]
    return request.client.host if request.client else "unknown"


@dataclass
class Bucket:
    tokens: float
    last_ts: float


class TokenBucketLimiter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[str, Bucket] = {}

    def allow(self, key: str, *, rps: float, burst: int) -> tuple[bool, float]:
        """Take one token for `key`; returns (allowed, seconds until the next token)."""
        now = time.monotonic()
        with self._lock:
            bucket = self._buckets.setdefault(key, Bucket(tokens=float(burst), last_ts=now))
            bucket.tokens = min(float(burst), bucket.tokens + max(0.0, now - bucket.last_ts) * rps)
            bucket.last_ts = now
            if bucket.tokens < 1.0:
                return False, max((1.0 - bucket.tokens) / rps, 0.1)
            bucket.tokens -= 1.0
            return True, 0.0


_limiter = TokenBucketLimiter()


def rate_limit_dependency(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> None:
    policy = RateLimitPolicy.from_env()
    if not policy.enabled:
        return
    key = f"{_caller(request, authorization)}:{_path_group(request.url.path)}"
    allowed, retry_after = _limiter.allow(key, rps=policy.rps, burst=policy.burst)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail="Too Many Requests",
            headers={"Retry-After": str(max(1, int(retry_after)))},
        )
