"""
In-process sliding-window rate limiting.

Unauthenticated endpoints are limited per client IP, authenticated ones per
user id. Limits are kept in memory, so each worker process counts separately.
Tier limits and windows come from settings (``rate_limit_<tier>_limit`` and
``rate_limit_<tier>_window``).
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Tuple
import logging
import math
import time

from fastapi import Request

from propertyhub.config import settings
from propertyhub.utils.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

TIER_NAMES = ("auth", "ai-search", "property-create", "appointment", "favorite", "default")

_WINDOW_UNITS = ((24 * 60 * 60, "day"), (60 * 60, "hour"), (60, "minute"), (1, "second"))


@dataclass(frozen=True)
class RateLimitTier:
    name: str
    limit: int
    window_seconds: int
    description: str


def describe_window(seconds: int) -> str:
    """``3600`` -> ``"hour"``, ``900`` -> ``"15 minutes"``."""
    for unit_seconds, unit in _WINDOW_UNITS:
        if seconds % unit_seconds == 0:
            count = seconds // unit_seconds
            return unit if count == 1 else f"{count} {unit}s"
    return f"{seconds} seconds"


def get_rate_limit_tier(name: str) -> RateLimitTier:
    """
    Build a tier from the current settings.

    Raises:
        KeyError: If the tier name is unknown
    """
    if name not in TIER_NAMES:
        raise KeyError(f"Unknown rate limit tier: {name}")

    field = name.replace("-", "_")
    limit = getattr(settings, f"rate_limit_{field}_limit")
    window = getattr(settings, f"rate_limit_{field}_window")
    return RateLimitTier(name, limit, window, f"{limit} requests per {describe_window(window)}")


class SlidingWindowRateLimiter:
    """
    Tracks request timestamps per identifier and tier.

    Keys whose newest hit has left its window are swept at most once per
    ``sweep_interval`` seconds, so idle clients do not stay in memory.
    """

    def __init__(self, sweep_interval: float = 60.0):
        self.sweep_interval = sweep_interval
        # key -> (window seconds, hit timestamps)
        self._hits: Dict[str, Tuple[int, Deque[float]]] = {}
        self._last_sweep: Optional[float] = None

    def hit(self, identifier: str, tier: RateLimitTier, now: Optional[float] = None) -> int:
        """
        Record a request and enforce the tier limit.

        Args:
            identifier: ``ip:<addr>`` or ``user:<id>``
            tier: Limit to apply
            now: Current monotonic time, for tests

        Returns:
            Remaining requests in the current window

        Raises:
            RateLimitExceededError: If the limit has been reached
        """
        now = time.monotonic() if now is None else now
        self._maybe_sweep(now)

        key = f"{tier.name}:{identifier}"
        _, hits = self._hits.setdefault(key, (tier.window_seconds, deque()))

        window_start = now - tier.window_seconds
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= tier.limit:
            retry_after = max(0, math.ceil(hits[0] + tier.window_seconds - now))
            logger.warning(
                f"Rate limit exceeded for tier '{tier.name}' ({_mask(identifier)}), retry after {retry_after}s"
            )
            raise RateLimitExceededError(retry_after, tier.description)

        hits.append(now)
        return tier.limit - len(hits)

    def _maybe_sweep(self, now: float) -> None:
        if self._last_sweep is not None and now - self._last_sweep < self.sweep_interval:
            return
        self._last_sweep = now

        stale = [
            key for key, (window, hits) in self._hits.items()
            if not hits or hits[-1] <= now - window
        ]
        for key in stale:
            del self._hits[key]
        if stale:
            logger.debug(f"Dropped {len(stale)} idle rate limit keys")

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()
        self._last_sweep = None


def _mask(identifier: str) -> str:
    kind, _, value = identifier.partition(":")
    return f"{kind}:{value[:8]}..."


def get_client_ip(request: Request) -> str:
    """Client IP, honouring the usual proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value:
            return value

    return request.client.host if request.client else "127.0.0.1"


rate_limiter = SlidingWindowRateLimiter(sweep_interval=settings.rate_limit_sweep_interval)


def check_rate_limit(identifier: str, tier_name: str = "default") -> None:
    """Apply a tier limit unless rate limiting is disabled."""
    if not settings.rate_limit_enabled or settings.is_testing:
        return
    rate_limiter.hit(identifier, get_rate_limit_tier(tier_name))
