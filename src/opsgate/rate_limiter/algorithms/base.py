"""
Abstract base class for all rate limiting algorithms.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from ..exceptions import RateLimitConfigError, RateLimitExceededError
from ..store import MemoryStore, StateStore

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateLimitStatus:
    """Snapshot of an identifier's allowance."""

    limit: int
    remaining: int
    reset: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RateLimitAlgorithm(ABC):
    """
    Abstract base class for rate limiting algorithms.

    Every per-identifier read-modify-write runs inside the store lock, so the
    "read usage" and "record usage" steps of a check cannot interleave with
    another thread's check. Entries are stamped with the strategy that wrote
    them and keyed "namespace:strategy:identifier", so strategies sharing a
    store never read each other's state. Limiters of the same strategy
    sharing a store should use distinct namespaces.
    """

    strategy = "base"

    def __init__(
        self,
        limit: int,
        window: float,
        store: Optional[StateStore] = None,
        clock: Optional[Clock] = None,
        namespace: Optional[str] = None,
    ):
        """
        Initialize the rate limiting algorithm.

        Args:
            limit: Default number of requests allowed per window
            window: Window length in seconds
            store: State store (a private MemoryStore when omitted)
            clock: Time source returning seconds (time.time by default)
            namespace: Optional key prefix separating limiters in a shared store
        """
        if not isinstance(limit, int) or limit <= 0:
            raise RateLimitConfigError(f"limit must be a positive integer, got {limit!r}")
        if window <= 0:
            raise RateLimitConfigError(f"window must be positive, got {window!r}")

        self.limit = limit
        self.window = float(window)
        self.store = store if store is not None else MemoryStore()
        self.clock: Clock = clock or time.time
        self.namespace = namespace
        self._prefix = f"{namespace}:" if namespace else ""

    def _key(self, identifier: str) -> str:
        """Store key holding the state for identifier, unique per strategy."""
        return f"{self._prefix}{self.strategy}:{identifier}"

    def _load(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Entry stored under key, or None. Runs under the store lock.

        Raises:
            RateLimitConfigError: If key holds state written by another strategy
        """
        state = self.store.get(key)
        if state is not None and not self._owns(state):
            raise RateLimitConfigError(
                f"Key '{key}' holds {state.get('kind')!r} state; limiters sharing "
                "a store need distinct namespaces",
                details={"key": key, "kind": state.get("kind")},
            )
        return state

    @abstractmethod
    def _check(
        self, identifier: str, limit: int, cost: int, now: float
    ) -> RateLimitStatus:
        """Admit the request or raise RateLimitExceededError. Runs under the store lock."""

    @abstractmethod
    def _status(self, identifier: str, now: float) -> RateLimitStatus:
        """Read-only status. Runs under the store lock and must not write."""

    @abstractmethod
    def _sweep(self, state: Dict[str, Any], now: float) -> bool:
        """Return True when the entry can be dropped without changing any outcome."""

    def check(
        self, identifier: str, limit: Optional[int] = None, cost: int = 1
    ) -> RateLimitStatus:
        """
        Record one request for identifier, or reject it.

        Args:
            identifier: Client identifier (IP address or explicit token)
            limit: Per-call limit, defaults to the configured limit
            cost: Units consumed by this request

        Returns:
            Status after admitting the request

        Raises:
            RateLimitExceededError: If the allowance is exhausted
            RateLimitConfigError: If the request can never be admitted
        """
        limit = self._resolve_limit(limit)
        if not isinstance(cost, int) or cost < 1:
            raise RateLimitConfigError(f"cost must be a positive integer, got {cost!r}")
        if cost > limit:
            raise RateLimitConfigError(
                f"cost {cost} exceeds limit {limit} and can never be admitted"
            )

        with self.store.lock():
            return self._check(identifier, limit, cost, self.clock())

    def get_status(self, identifier: str) -> RateLimitStatus:
        """Current allowance for identifier. Never mutates state."""
        with self.store.lock():
            return self._status(identifier, self.clock())

    def cleanup(self, now: Optional[float] = None) -> int:
        """
        Remove entries whose state has fully expired.

        Iterates a snapshot of the keys and re-reads each entry under the
        lock, so an entry refreshed by a concurrent check is kept.

        Returns:
            Number of entries removed
        """
        now = self.clock() if now is None else now
        removed = 0
        for key in self.store.keys(self._prefix):
            with self.store.lock():
                state = self.store.get(key)
                if state is None or not self._owns(state):
                    continue
                if self._sweep(state, now):
                    self.store.delete(key)
                    removed += 1
        return removed

    def reset(self, identifier: str) -> bool:
        """Drop the state held for identifier."""
        key = self._key(identifier)
        with self.store.lock():
            state = self.store.get(key)
            if state is None or not self._owns(state):
                return False
            return self.store.delete(key)

    def clear(self) -> int:
        """Drop all state owned by this algorithm."""
        removed = 0
        with self.store.lock():
            for key in self.store.keys(self._prefix):
                state = self.store.get(key)
                if state is not None and self._owns(state) and self.store.delete(key):
                    removed += 1
        return removed

    def describe(self) -> Dict[str, Any]:
        """Configuration summary used in stats and logs."""
        return {
            "strategy": self.strategy,
            "limit": self.limit,
            "window": self.window,
            "namespace": self.namespace,
        }

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.limit
        if not isinstance(limit, int) or limit <= 0:
            raise RateLimitConfigError(f"limit must be a positive integer, got {limit!r}")
        return limit

    def _owns(self, state: Dict[str, Any]) -> bool:
        return state.get("kind") == self.strategy

    def _exceeded(
        self, identifier: str, limit: int, reset_time: float, now: float
    ) -> RateLimitExceededError:
        return RateLimitExceededError(
            "Rate limit exceeded",
            limit=limit,
            reset_time=reset_time,
            retry_after=reset_time - now,
            identifier=identifier,
        )
