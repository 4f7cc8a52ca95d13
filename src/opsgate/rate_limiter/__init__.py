"""
Rate Limiter Package

In-process rate limiting with three strategies, an injected state store,
an owned cleanup task and FastAPI/Starlette integration.

Quick Start:
-----------

Explicit limiter with lifecycle:
    from opsgate.rate_limiter import RateLimiter, RateLimitExceededError

    with RateLimiter.create("fixed_window", limit=3, window=60) as limiter:
        try:
            limiter.check("203.0.113.7")
        except RateLimitExceededError as e:
            print(e.retry_after)

Guarding a handler:
    from opsgate.rate_limiter import with_rate_limit

    app.add_route("/login", with_rate_limit(limiter, 100, login_handler), methods=["POST"])

FastAPI dependency:
    from fastapi import Depends
    from opsgate.rate_limiter import RateLimitDependency, install_exception_handlers

    install_exception_handlers(app)

    @app.get("/projects", dependencies=[Depends(RateLimitDependency(limiter))])
    async def list_projects(): ...
"""

from .algorithms import (
    AVAILABLE_ALGORITHMS,
    FixedWindowAlgorithm,
    RateLimitAlgorithm,
    RateLimitStatus,
    SlidingWindowAlgorithm,
    TokenBucketAlgorithm,
    create_algorithm,
)
from .cleanup import CleanupTask
from .core import RateLimiter
from .exceptions import RateLimitConfigError, RateLimitError, RateLimitExceededError
from .middleware import (
    RateLimitDependency,
    RateLimitMiddleware,
    add_rate_limit_headers,
    install_exception_handlers,
    rate_limit_exceeded_response,
    with_rate_limit,
)
from .registry import DEFAULT_PRESETS, LimiterRegistry, build_default_registry
from .stats import RateLimitStats
from .store import MemoryStore, StateStore
from .utils import ClientIdentifier, resolve_identifier

__all__ = [
    # Core classes
    "RateLimiter",
    "RateLimitStats",
    "CleanupTask",
    # Exceptions
    "RateLimitError",
    "RateLimitExceededError",
    "RateLimitConfigError",
    # Algorithms
    "RateLimitAlgorithm",
    "RateLimitStatus",
    "FixedWindowAlgorithm",
    "SlidingWindowAlgorithm",
    "TokenBucketAlgorithm",
    "create_algorithm",
    "AVAILABLE_ALGORITHMS",
    # Stores
    "StateStore",
    "MemoryStore",
    # Registry
    "LimiterRegistry",
    "build_default_registry",
    "DEFAULT_PRESETS",
    # HTTP integration
    "RateLimitMiddleware",
    "RateLimitDependency",
    "with_rate_limit",
    "add_rate_limit_headers",
    "install_exception_handlers",
    "rate_limit_exceeded_response",
    # Utilities
    "ClientIdentifier",
    "resolve_identifier",
]
