"""
Sliding window rate limiting algorithm implementation.
"""

from collections import deque
from typing import Any, Deque, Dict

from .base import RateLimitAlgorithm, RateLimitStatus


class SlidingWindowAlgorithm(RateLimitAlgorithm):
    """
    Sliding window log algorithm.

    Keeps the timestamps of admitted requests per identifier in ascending
    order. A request is admitted while fewer than `limit` timestamps fall in
    the trailing `window` seconds, which closes the boundary burst that the
    fixed window allows at the cost of one timestamp per admitted request.
    """

    strategy = "sliding_window"

    @staticmethod
    def _expired_count(timestamps: Deque[float], cutoff: float) -> int:
        expired = 0
        for ts in timestamps:
            if ts > cutoff:
                break
            expired += 1
        return expired

    def _prune(self, timestamps: Deque[float], now: float) -> None:
        cutoff = now - self.window
        while timestamps and timestamps[0] <= cutoff:
            timestamps.popleft()

    def _check(
        self, identifier: str, limit: int, cost: int, now: float
    ) -> RateLimitStatus:
        key = self._key(identifier)
        entry = self._load(key)
        if entry is None:
            entry = {"kind": self.strategy, "timestamps": deque()}

        timestamps: Deque[float] = entry["timestamps"]
        self._prune(timestamps, now)

        excess = len(timestamps) + cost - limit
        if excess > 0:
            # Capacity frees up once the `excess` oldest requests leave the window
            raise self._exceeded(identifier, limit, timestamps[excess - 1] + self.window, now)

        timestamps.extend([now] * cost)
        self.store.set(key, entry)

        return RateLimitStatus(
            limit=limit,
            remaining=max(0, limit - len(timestamps)),
            reset=timestamps[0] + self.window,
        )

    def _status(self, identifier: str, now: float) -> RateLimitStatus:
        entry = self._load(self._key(identifier))
        timestamps: Deque[float] = entry["timestamps"] if entry else deque()

        expired = self._expired_count(timestamps, now - self.window)
        live = len(timestamps) - expired
        reset = timestamps[expired] + self.window if live else now + self.window

        return RateLimitStatus(
            limit=self.limit,
            remaining=max(0, self.limit - live),
            reset=reset,
        )

    def _sweep(self, state: Dict[str, Any], now: float) -> bool:
        timestamps = state["timestamps"]
        self._prune(timestamps, now)
        return not timestamps
