"""
Simple in-memory, fixed-window rate limiter keyed by client identifier.

Suitable for a single process. Expired windows are swept once the table grows
past `sweep_threshold` entries.
"""
from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from domain.models import RateLimitStatus
from settings import settings


class RateLimiter(ABC):
    @abstractmethod
    def check_rate_limit(self, client_id: str) -> RateLimitStatus:
        """Count one request for client_id and report whether it is allowed."""


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter(RateLimiter):
    def __init__(
        self,
        max_requests: int = 60,
        window_seconds: float = 60.0,
        sweep_threshold: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check_rate_limit(self, client_id: str) -> RateLimitStatus:
        now = self._clock()
        with self._lock:
            window = self._windows.get(client_id)
            if window is None or now >= window.reset_at:
                window = _Window(count=1, reset_at=now + self.window_seconds)
                self._windows[client_id] = window
                if len(self._windows) > self.sweep_threshold:
                    self._sweep(now)
                return self._status(True, self.max_requests - 1, window.reset_at)

            if window.count >= self.max_requests:
                return self._status(False, 0, window.reset_at)

            window.count += 1
            return self._status(True, self.max_requests - window.count, window.reset_at)

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)

    def _sweep(self, now: float) -> None:
        expired = [key for key, w in self._windows.items() if now >= w.reset_at]
        for key in expired:
            del self._windows[key]

    def _status(self, allowed: bool, remaining: int, reset_at: float) -> RateLimitStatus:
        return RateLimitStatus(
            allowed=allowed,
            remaining=max(0, remaining),
            reset_at=reset_at,
            limit=self.max_requests,
        )


_default_rate_limiter: Optional[FixedWindowRateLimiter] = None


def get_default_rate_limiter() -> FixedWindowRateLimiter:
    global _default_rate_limiter
    if _default_rate_limiter is None:
        _default_rate_limiter = FixedWindowRateLimiter(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )
    return _default_rate_limiter
