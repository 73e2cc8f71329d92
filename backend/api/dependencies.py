"""
Request helpers shared by the context routes.
"""
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from fastapi import Request

from domain.models import RateLimitStatus

UNKNOWN_CLIENT = "unknown"


def client_identifier(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def format_reset(reset_at: float) -> str:
    """Epoch seconds -> ISO-8601 UTC with milliseconds, e.g. 2026-01-01T00:00:00.000Z."""
    dt = datetime.fromtimestamp(reset_at, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def rate_limit_headers(status: Optional[RateLimitStatus]) -> Dict[str, str]:
    if status is None:
        return {}
    return {
        "X-RateLimit-Limit": str(status.limit),
        "X-RateLimit-Remaining": str(status.remaining),
        "X-RateLimit-Reset": format_reset(status.reset_at),
    }


def all_finite(values: Iterable[Optional[float]]) -> bool:
    """True when every supplied number is finite; missing (None) values are skipped."""
    return all(v is None or math.isfinite(v) for v in values)
