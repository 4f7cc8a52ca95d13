import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class RateLimitStats:
    """
    Counters for rate limiter monitoring.

    Tracks admitted and rejected checks plus the time of the last request
    and of the last rejection.
    """

    total_requests: int = 0
    allowed_requests: int = 0
    rejected_requests: int = 0
    created_at: float = field(default_factory=time.time)
    last_request_time: Optional[float] = None
    last_rejection_time: Optional[float] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_request(self, allowed: bool) -> None:
        """
        Record a check in the statistics.

        Args:
            allowed: Whether the request was admitted
        """
        now = time.time()
        with self._lock:
            self.total_requests += 1
            self.last_request_time = now
            if allowed:
                self.allowed_requests += 1
            else:
                self.rejected_requests += 1
                self.last_rejection_time = now

    @property
    def rejection_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.rejected_requests / self.total_requests

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_requests": self.total_requests,
                "allowed_requests": self.allowed_requests,
                "rejected_requests": self.rejected_requests,
                "rejection_rate": f"{self.rejection_rate * 100:.2f}%",
                "uptime_seconds": time.time() - self.created_at,
                "last_request_time": self.last_request_time,
                "last_rejection_time": self.last_rejection_time,
            }

    def reset(self) -> None:
        with self._lock:
            self.total_requests = 0
            self.allowed_requests = 0
            self.rejected_requests = 0
            self.created_at = time.time()
            self.last_request_time = None
            self.last_rejection_time = None
