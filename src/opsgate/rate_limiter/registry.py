"""
Explicit registry of named rate limiters.

A registry is an ordinary object owned by whoever builds it (usually the
application lifespan); there is no process-wide registry.
"""

import threading
from typing import Dict, Iterator, List, Optional

from loguru import logger

from opsgate.config import Settings

from .algorithms import FixedWindowAlgorithm
from .core import RateLimiter
from .exceptions import RateLimitConfigError
from .store import MemoryStore, StateStore

# Preset name -> requests per window
DEFAULT_PRESETS: Dict[str, int] = {
    "auth": 100,  # authentication endpoints
    "api": 500,  # general API endpoints
    "public": 1000,  # public endpoints
    "sensitive": 10,  # sensitive operations
    "upload": 50,  # file uploads
}


class LimiterRegistry:
    """Name -> RateLimiter map with a shared lifecycle."""

    def __init__(self, store: Optional[StateStore] = None):
        self.store = store
        self._limiters: Dict[str, RateLimiter] = {}
        self._lock = threading.RLock()

    def register(self, limiter: RateLimiter, replace: bool = False) -> RateLimiter:
        with self._lock:
            existing = self._limiters.get(limiter.name)
            if existing is not None:
                if not replace:
                    raise RateLimitConfigError(
                        f"Rate limiter '{limiter.name}' is already registered"
                    )
                existing.close()
            self._limiters[limiter.name] = limiter
            return limiter

    def get(self, name: str) -> RateLimiter:
        with self._lock:
            if name not in self._limiters:
                raise RateLimitConfigError(
                    f"No rate limiter registered with name '{name}'. "
                    f"Available limiters: {sorted(self._limiters)}"
                )
            return self._limiters[name]

    def names(self) -> List[str]:
        with self._lock:
            return list(self._limiters)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._limiters

    def __iter__(self) -> Iterator[RateLimiter]:
        with self._lock:
            return iter(list(self._limiters.values()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._limiters)

    def start_all(self) -> None:
        for limiter in self:
            limiter.start()
        logger.info("Started cleanup for {} rate limiters", len(self))

    def close_all(self) -> None:
        for limiter in self:
            limiter.close()
        if self.store is not None:
            self.store.close()
        logger.info("Closed {} rate limiters", len(self))


def build_default_registry(
    settings: Optional[Settings] = None,
    store: Optional[StateStore] = None,
    clock=None,
) -> LimiterRegistry:
    """
    Build the preset limiters (auth, api, public, sensitive, upload).

    All presets are fixed-window limiters sharing one store, each under its
    own namespace so their counters stay independent.
    """
    store = store if store is not None else MemoryStore()
    limits = settings.preset_limits() if settings is not None else dict(DEFAULT_PRESETS)
    window = settings.RATE_LIMIT_WINDOW_SECONDS if settings is not None else 60.0
    cleanup_interval = settings.RATE_LIMIT_CLEANUP_SECONDS if settings is not None else 60.0

    registry = LimiterRegistry(store=store)
    for name, limit in limits.items():
        algorithm = FixedWindowAlgorithm(
            limit=limit, window=window, store=store, clock=clock, namespace=name
        )
        registry.register(RateLimiter(algorithm, name=name, cleanup_interval=cleanup_interval))
    return registry
