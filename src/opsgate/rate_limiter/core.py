"""
Main RateLimiter class that wraps an algorithm with logging, statistics
and an owned cleanup task.
"""

from typing import Any, Dict, Optional

from loguru import logger

from .algorithms import RateLimitAlgorithm, RateLimitStatus, create_algorithm
from .cleanup import CleanupTask
from .exceptions import RateLimitConfigError, RateLimitExceededError
from .stats import RateLimitStats


class RateLimiter:
    """
    Rate limiter facade used by call sites and the HTTP layer.

    The strategy is chosen per call site when the limiter is built. The
    limiter owns one CleanupTask; start() launches it and close() stops it
    deterministically, so a limiter used as a context manager never leaks a
    timer thread.
    """

    def __init__(
        self,
        algorithm: RateLimitAlgorithm,
        name: str = "default",
        cleanup_interval: float = 60.0,
        autostart: bool = False,
    ):
        """
        Initialize the rate limiter.

        Args:
            algorithm: Strategy instance holding the per-identifier state
            name: Name used in logs and stats
            cleanup_interval: Seconds between background cleanup sweeps
            autostart: Start the cleanup task immediately
        """
        if cleanup_interval <= 0:
            raise RateLimitConfigError("cleanup_interval must be positive")

        self.algorithm = algorithm
        self.name = name
        self.cleanup_interval = cleanup_interval
        self.stats = RateLimitStats()
        self._cleanup_task = CleanupTask(self.cleanup, cleanup_interval, name=name)
        self._closed = False

        logger.info(
            "RateLimiter '{}' initialized: {} req/{}s using {}",
            name,
            algorithm.limit,
            algorithm.window,
            algorithm.strategy,
        )

        if autostart:
            self.start()

    @classmethod
    def create(
        cls,
        strategy: str,
        name: str = "default",
        cleanup_interval: float = 60.0,
        autostart: bool = False,
        **algorithm_kwargs: Any,
    ) -> "RateLimiter":
        """Build a limiter and its algorithm from a strategy name."""
        algorithm = create_algorithm(strategy, **algorithm_kwargs)
        return cls(algorithm, name=name, cleanup_interval=cleanup_interval, autostart=autostart)

    @property
    def strategy(self) -> str:
        return self.algorithm.strategy

    @property
    def limit(self) -> int:
        return self.algorithm.limit

    @property
    def window(self) -> float:
        return self.algorithm.window

    def check(
        self, identifier: str, limit: Optional[int] = None, cost: int = 1
    ) -> RateLimitStatus:
        """
        Admit one request for identifier or raise.

        Args:
            identifier: Client identifier
            limit: Per-call limit (fixed and sliding window only)
            cost: Units consumed by the request

        Returns:
            Status after the request was admitted

        Raises:
            RateLimitExceededError: If the identifier's allowance is exhausted
        """
        if self._closed:
            raise RateLimitConfigError(f"RateLimiter '{self.name}' is closed")
        try:
            status = self.algorithm.check(identifier, limit=limit, cost=cost)
        except RateLimitExceededError as e:
            self.stats.record_request(allowed=False)
            logger.warning(
                "Rate limit exceeded for '{}' on limiter '{}' (limit={}, retry_after={:.2f}s)",
                identifier,
                self.name,
                e.limit,
                e.retry_after,
            )
            raise
        self.stats.record_request(allowed=True)
        return status

    def is_allowed(self, identifier: str, limit: Optional[int] = None, cost: int = 1) -> bool:
        """Boolean form of check() for callers that do not want an exception."""
        try:
            self.check(identifier, limit=limit, cost=cost)
        except RateLimitExceededError:
            return False
        return True

    def get_status(self, identifier: str) -> RateLimitStatus:
        """Read-only status for identifier."""
        return self.algorithm.get_status(identifier)

    def reset(self, identifier: str) -> bool:
        """Forget the state held for one identifier."""
        removed = self.algorithm.reset(identifier)
        if removed:
            logger.info("Reset rate limiter '{}' for '{}'", self.name, identifier)
        return removed

    def clear(self) -> int:
        """Forget all state and statistics."""
        removed = self.algorithm.clear()
        self.stats.reset()
        logger.info("Cleared rate limiter '{}' ({} entries)", self.name, removed)
        return removed

    def cleanup(self) -> int:
        """Remove expired entries now. Returns the number removed."""
        removed = self.algorithm.cleanup()
        if removed:
            logger.debug("Cleaned up {} expired entries from '{}'", removed, self.name)
        return removed

    @property
    def cleanup_running(self) -> bool:
        return self._cleanup_task.is_running

    def start(self) -> None:
        if self._closed:
            raise RateLimitConfigError(f"RateLimiter '{self.name}' is closed")
        self._cleanup_task.start()

    def close(self) -> None:
        if self._closed:
            return
        self._cleanup_task.stop()
        self._closed = True
        logger.debug("RateLimiter '{}' closed", self.name)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "RateLimiter":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def get_stats(self) -> Dict[str, Any]:
        stats = self.stats.to_dict()
        stats.update(
            {
                "name": self.name,
                "cleanup_interval": self.cleanup_interval,
                "cleanup_running": self.cleanup_running,
                "algorithm": self.algorithm.describe(),
            }
        )
        return stats
