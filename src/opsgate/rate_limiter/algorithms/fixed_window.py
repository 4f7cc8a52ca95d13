"""
Fixed window rate limiting algorithm implementation.
"""

from typing import Any, Dict

from .base import RateLimitAlgorithm, RateLimitStatus


class FixedWindowAlgorithm(RateLimitAlgorithm):
    """
    Fixed window rate limiting algorithm.

    Each identifier gets a counter and a reset time. A window opens lazily on
    the first request after the previous one expired and lasts `window`
    seconds from that request. Memory efficient, but a client can spend up
    to twice the limit across a window boundary.

    Entries are keyed "fixed_window:identifier:window", so fixed-window limiters with
    different window lengths can share a store.
    """

    strategy = "fixed_window"

    def _key(self, identifier: str) -> str:
        return f"{super()._key(identifier)}:{self.window:g}"

    def _current_entry(self, identifier: str, now: float):
        entry = self._load(self._key(identifier))
        if entry is None or now >= entry["reset_time"]:
            return None
        return entry

    def _check(
        self, identifier: str, limit: int, cost: int, now: float
    ) -> RateLimitStatus:
        entry = self._current_entry(identifier, now)
        if entry is None:
            # New window, count starts from zero
            entry = {"kind": self.strategy, "count": 0, "reset_time": now + self.window}

        if entry["count"] + cost > limit:
            raise self._exceeded(identifier, limit, entry["reset_time"], now)

        entry["count"] += cost
        self.store.set(self._key(identifier), entry)

        return RateLimitStatus(
            limit=limit,
            remaining=max(0, limit - entry["count"]),
            reset=entry["reset_time"],
        )

    def _status(self, identifier: str, now: float) -> RateLimitStatus:
        entry = self._current_entry(identifier, now)
        if entry is None:
            return RateLimitStatus(
                limit=self.limit, remaining=self.limit, reset=now + self.window
            )
        return RateLimitStatus(
            limit=self.limit,
            remaining=max(0, self.limit - entry["count"]),
            reset=entry["reset_time"],
        )

    def _sweep(self, state: Dict[str, Any], now: float) -> bool:
        return state["reset_time"] <= now
