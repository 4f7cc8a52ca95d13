"""
Rate limiting algorithms package.

Available algorithms:
- FixedWindowAlgorithm: counter per identifier, reset lazily when the window expires
- SlidingWindowAlgorithm: timestamp log per identifier over a trailing window
- TokenBucketAlgorithm: bursts up to capacity, steady refill rate

Example usage:
    from opsgate.rate_limiter.algorithms import SlidingWindowAlgorithm

    algorithm = SlidingWindowAlgorithm(limit=100, window=60)
    algorithm.check("203.0.113.7")
"""

from typing import Any, Dict, Type

from ..exceptions import RateLimitConfigError
from .base import Clock, RateLimitAlgorithm, RateLimitStatus
from .fixed_window import FixedWindowAlgorithm
from .sliding_window import SlidingWindowAlgorithm
from .token_bucket import TokenBucketAlgorithm

AVAILABLE_ALGORITHMS: Dict[str, Type[RateLimitAlgorithm]] = {
    "fixed_window": FixedWindowAlgorithm,
    "sliding_window": SlidingWindowAlgorithm,
    "token_bucket": TokenBucketAlgorithm,
}


def create_algorithm(strategy: str, **kwargs: Any) -> RateLimitAlgorithm:
    """
    Factory function to create rate limiting algorithms.

    Args:
        strategy: 'fixed_window', 'sliding_window' or 'token_bucket'
        **kwargs: Constructor arguments of the selected algorithm

    Returns:
        Configured rate limiting algorithm

    Raises:
        RateLimitConfigError: If strategy is not recognized
    """
    if strategy not in AVAILABLE_ALGORITHMS:
        available = ", ".join(AVAILABLE_ALGORITHMS)
        raise RateLimitConfigError(
            f"Unknown rate limiting strategy '{strategy}'. Available: {available}"
        )
    return AVAILABLE_ALGORITHMS[strategy](**kwargs)


__all__ = [
    "Clock",
    "RateLimitAlgorithm",
    "RateLimitStatus",
    "FixedWindowAlgorithm",
    "SlidingWindowAlgorithm",
    "TokenBucketAlgorithm",
    "AVAILABLE_ALGORITHMS",
    "create_algorithm",
]
