"""
Custom exceptions for the rate limiter package.
"""

import math
from typing import Any, Dict, Optional

from opsgate.exceptions import OpsGateError


class RateLimitError(OpsGateError):
    """Base exception for all rate limiting errors."""

    def __init__(
        self,
        message: str = "",
        code: str = "RATE_LIMIT_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Rate limiting error", code=code, details=details
        )


class RateLimitExceededError(RateLimitError):
    """
    Raised when an identifier has exhausted its allowance.

    This is an expected, recoverable condition. It is reported to the caller
    and never retried by the limiter itself.

    Attributes:
        limit: The limit that was exceeded
        reset_time: Absolute timestamp (seconds) when capacity frees up
        retry_after: Seconds to wait before retrying
        identifier: The client identifier that was limited
    """

    status_code = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        limit: Optional[int] = None,
        reset_time: float = 0.0,
        retry_after: float = 0.0,
        identifier: Optional[str] = None,
    ):
        self.limit = limit
        self.reset_time = reset_time
        self.retry_after = max(0.0, retry_after)
        self.identifier = identifier
        super().__init__(
            message=message,
            code="TOO_MANY_REQUESTS",
            details={
                "limit": limit,
                "reset_time": reset_time,
                "retry_after": self.retry_after,
            },
        )

    @property
    def retry_after_seconds(self) -> int:
        """Retry-After value rounded up to whole seconds."""
        return max(0, math.ceil(self.retry_after))


class RateLimitConfigError(RateLimitError):
    """Raised when there's an error in rate limiter configuration."""

    def __init__(
        self,
        message: str = "",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Invalid rate limiter configuration",
            code="RATE_LIMIT_CONFIG_ERROR",
            details=details,
        )
