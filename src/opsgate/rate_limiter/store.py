"""
State stores for per-identifier rate limit data.

A store is created explicitly and injected into each algorithm, so there is
no hidden module-level state. Several limiters may share one store; keys are
namespaced by the algorithms that write them.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional


class StateStore(ABC):
    """
    Abstract base class for rate limit state storage.

    Implementations must make lock() usable as a critical section around a
    read-modify-write of one or more entries, and keys() must return a
    snapshot that stays valid while other threads mutate the store.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the state stored under key, or None."""

    @abstractmethod
    def set(self, key: str, state: Dict[str, Any]) -> None:
        """Store state under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key. Returns True if it existed."""

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """Snapshot of the keys starting with prefix."""

    @abstractmethod
    def lock(self):
        """Context manager guarding a read-modify-write."""

    def clear(self, prefix: str = "") -> int:
        """
        Delete every key starting with prefix.

        Returns:
            Number of keys removed
        """
        with self.lock():
            removed = 0
            for key in self.keys(prefix):
                if self.delete(key):
                    removed += 1
            return removed

    def __len__(self) -> int:
        return len(self.keys())

    def close(self) -> None:
        """Release resources held by the store."""


class MemoryStore(StateStore):
    """
    In-memory, thread-safe state store.

    All access goes through a single re-entrant lock, which makes every
    algorithm check a single-writer critical section.
    """

    def __init__(self) -> None:
        self._storage: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._closed = False

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._storage.get(key)

    def set(self, key: str, state: Dict[str, Any]) -> None:
        with self._lock:
            self._storage[key] = state

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._storage.pop(key, None) is not None

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            if not prefix:
                return list(self._storage)
            return [key for key in self._storage if key.startswith(prefix)]

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self._lock:
            yield

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            self._storage.clear()
            self._closed = True
