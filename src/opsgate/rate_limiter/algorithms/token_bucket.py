"""
Token bucket rate limiting algorithm implementation.
"""

import math
from typing import Any, Dict, Optional, Tuple

from ..exceptions import RateLimitConfigError
from ..store import StateStore
from .base import Clock, RateLimitAlgorithm, RateLimitStatus


class TokenBucketAlgorithm(RateLimitAlgorithm):
    """
    Token bucket rate limiting algorithm.

    Each identifier owns a bucket holding up to `max_tokens` whole tokens,
    refilled at `tokens_per_second`. A new bucket starts full, so a client can
    burst `max_tokens` requests before settling at the refill rate.

    Refill adds floor(elapsed * rate) tokens and advances `last_refill` by the
    time those tokens represent, so partial progress toward the next token is
    carried over instead of being discarded. A full bucket does not accrue.
    """

    strategy = "token_bucket"

    def __init__(
        self,
        max_tokens: int,
        tokens_per_second: float,
        store: Optional[StateStore] = None,
        clock: Optional[Clock] = None,
        namespace: Optional[str] = None,
        idle_timeout: float = 60.0,
    ):
        """
        Initialize token bucket algorithm.

        Args:
            max_tokens: Bucket capacity (the burst allowance)
            tokens_per_second: Steady-state refill rate
            store: State store (a private MemoryStore when omitted)
            clock: Time source returning seconds
            namespace: Optional key prefix separating limiters in a shared store
            idle_timeout: Seconds of inactivity before cleanup may drop a bucket
        """
        if tokens_per_second <= 0:
            raise RateLimitConfigError(
                f"tokens_per_second must be positive, got {tokens_per_second!r}"
            )
        if idle_timeout <= 0:
            raise RateLimitConfigError(f"idle_timeout must be positive, got {idle_timeout!r}")
        if not isinstance(max_tokens, int) or max_tokens <= 0:
            raise RateLimitConfigError(
                f"max_tokens must be a positive integer, got {max_tokens!r}"
            )

        # Window is the time needed to refill an empty bucket
        super().__init__(
            max_tokens, max_tokens / tokens_per_second, store, clock, namespace
        )
        self.max_tokens = max_tokens
        self.tokens_per_second = float(tokens_per_second)
        self.idle_timeout = float(idle_timeout)

    def _refill(self, entry: Dict[str, Any], now: float) -> Tuple[int, float]:
        """Tokens and last_refill after refilling up to now, without writing."""
        tokens = entry["tokens"]
        last_refill = entry["last_refill"]
        if tokens >= self.max_tokens:
            return self.max_tokens, now

        elapsed = max(0.0, now - last_refill)
        added = math.floor(elapsed * self.tokens_per_second)
        if added <= 0:
            return tokens, last_refill

        tokens += added
        if tokens >= self.max_tokens:
            return self.max_tokens, now
        return tokens, last_refill + added / self.tokens_per_second

    def _full_at(self, tokens: int, last_refill: float, now: float) -> float:
        if tokens >= self.max_tokens:
            return now
        return last_refill + (self.max_tokens - tokens) / self.tokens_per_second

    def check(
        self, identifier: str, limit: Optional[int] = None, cost: int = 1
    ) -> RateLimitStatus:
        """
        Take `cost` tokens from identifier's bucket, or reject.

        Raises:
            RateLimitExceededError: If the bucket holds fewer than `cost` tokens
            RateLimitConfigError: If a per-call limit is given or cost exceeds capacity
        """
        if limit is not None and limit != self.max_tokens:
            raise RateLimitConfigError(
                "token bucket capacity is fixed at construction; pass cost instead of limit"
            )
        return super().check(identifier, None, cost)

    def _check(
        self, identifier: str, limit: int, cost: int, now: float
    ) -> RateLimitStatus:
        key = self._key(identifier)
        entry = self._load(key)
        if entry is None:
            entry = {"kind": self.strategy, "tokens": self.max_tokens, "last_refill": now}

        tokens, last_refill = self._refill(entry, now)

        if tokens < cost:
            # Rejected requests leave the bucket untouched
            ready_at = last_refill + (cost - tokens) / self.tokens_per_second
            raise self._exceeded(identifier, self.max_tokens, ready_at, now)

        tokens -= cost
        self.store.set(
            key,
            {
                "kind": self.strategy,
                "tokens": tokens,
                "last_refill": last_refill,
                "last_seen": now,
            },
        )

        return RateLimitStatus(
            limit=self.max_tokens,
            remaining=tokens,
            reset=self._full_at(tokens, last_refill, now),
        )

    def _status(self, identifier: str, now: float) -> RateLimitStatus:
        entry = self._load(self._key(identifier))
        if entry is None:
            return RateLimitStatus(limit=self.max_tokens, remaining=self.max_tokens, reset=now)

        tokens, last_refill = self._refill(entry, now)
        return RateLimitStatus(
            limit=self.max_tokens,
            remaining=tokens,
            reset=self._full_at(tokens, last_refill, now),
        )

    def _sweep(self, state: Dict[str, Any], now: float) -> bool:
        # Only a bucket that is idle and already full again is dropped, which
        # is indistinguishable from the fresh bucket a later check would create
        if now - state.get("last_seen", state["last_refill"]) < self.idle_timeout:
            return False
        tokens, _ = self._refill(state, now)
        return tokens >= self.max_tokens

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info.update(
            {
                "max_tokens": self.max_tokens,
                "tokens_per_second": self.tokens_per_second,
                "idle_timeout": self.idle_timeout,
            }
        )
        return info
