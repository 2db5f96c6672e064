"""
Rate limiting for the TTS endpoint.

Implements a sliding window rate limiter keyed by client address. The
limiter is owned by the application (``app.state.rate_limiter``) and reached
through the ``get_rate_limiter`` dependency, so it can be replaced without
touching route code.
"""

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

from fastapi import Request

from ..errors import RateLimitExceeded

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    remaining: int
    reset_time: float
    retry_after: Optional[int] = None


class RateLimiter:
    """
    Sliding window rate limiter.

    Keeps the admission timestamps of each client inside the current window,
    so at most ``requests_per_minute`` requests are admitted in any window of
    ``window_seconds``, whatever its alignment.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests admitted per window.
            window_seconds: Time window in seconds (default 60).
            clock: Monotonic time source, replaceable in tests.
        """
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.requests_per_minute = requests_per_minute
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: dict[str, list[float]] = {}
        self._lock = Lock()
        self._last_sweep = clock()

    def check(self, client_id: str) -> RateLimitResult:
        """
        Check if a request from client_id is allowed, recording it if so.

        Args:
            client_id: Unique identifier for the client (usually IP address).

        Returns:
            RateLimitResult with allowed status and metadata.
        """
        current_time = self._clock()
        window_start = current_time - self.window_seconds

        with self._lock:
            # Drop admissions that left the window
            timestamps = [
                ts for ts in self._requests.get(client_id, ())
                if ts > window_start
            ]

            request_count = len(timestamps)

            # Timestamps are appended in order, the first one expires first
            if timestamps:
                reset_time = timestamps[0] + self.window_seconds
            else:
                reset_time = current_time + self.window_seconds

            if request_count >= self.requests_per_minute:
                self._requests[client_id] = timestamps
                retry_after = max(1, int(reset_time - current_time) + 1)
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_time=reset_time,
                    retry_after=retry_after
                )

            timestamps.append(current_time)
            self._requests[client_id] = timestamps
            if current_time - self._last_sweep >= self.window_seconds:
                self._evict_idle(window_start)
                self._last_sweep = current_time

            return RateLimitResult(
                allowed=True,
                remaining=self.requests_per_minute - len(timestamps),
                reset_time=reset_time
            )

    def consume(self, client_id: str) -> RateLimitResult:
        """
        Admit one request for client_id.

        Raises:
            RateLimitExceeded: when the client already used its budget for
                the current window.
        """
        result = self.check(client_id)
        if not result.allowed:
            logger.warning(f"Rate limit exceeded for client: {client_id}")
            raise RateLimitExceeded(retry_after=result.retry_after)
        return result

    def _evict_idle(self, window_start: float) -> None:
        # Caller holds the lock
        idle = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in idle:
            del self._requests[key]

    def tracked_clients(self) -> int:
        """Number of clients currently holding admissions."""
        with self._lock:
            return len(self._requests)

    def reset(self, client_id: str) -> None:
        """Reset rate limit for a specific client."""
        with self._lock:
            self._requests.pop(client_id, None)

    def reset_all(self) -> None:
        """Reset all rate limits."""
        with self._lock:
            self._requests.clear()


def client_key(request: Request, trust_proxy: bool = False) -> str:
    """Rate limit key for a request: the peer address, or the first X-Forwarded-For hop."""
    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def get_rate_limiter(request: Request) -> RateLimiter:
    """FastAPI dependency returning the application's rate limiter."""
    return request.app.state.rate_limiter
