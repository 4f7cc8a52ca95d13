"""
Utility functions for rate limiting.
"""

import math
from typing import Dict, Optional

from starlette.requests import Request

from .algorithms import RateLimitStatus
from .exceptions import RateLimitExceededError

DEFAULT_CLIENT_IP = "127.0.0.1"


class ClientIdentifier:
    """
    Strategies for identifying clients for rate limiting purposes.
    """

    @staticmethod
    def get_client_ip(request: Request) -> str:
        """
        Extract client IP address from request.

        Checks common proxy headers before falling back to the socket peer.

        Args:
            request: Starlette/FastAPI request object

        Returns:
            Client IP address as string
        """
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # First entry in the chain is the original client
            first = forwarded_for.split(",")[0].strip()
            if first:
                return first

        real_ip = request.headers.get("X-Real-IP")
        if real_ip and real_ip.strip():
            return real_ip.strip()

        cf_connecting_ip = request.headers.get("CF-Connecting-IP")
        if cf_connecting_ip and cf_connecting_ip.strip():
            return cf_connecting_ip.strip()

        if request.client and request.client.host:
            return request.client.host

        return DEFAULT_CLIENT_IP


def resolve_identifier(request: Request, token: Optional[str] = None) -> str:
    """An explicit token wins over the client IP."""
    if token:
        return token
    return ClientIdentifier.get_client_ip(request)


def rate_limit_headers(status: RateLimitStatus, limit: Optional[int] = None) -> Dict[str, str]:
    """X-RateLimit-* headers describing an identifier's allowance."""
    return {
        "X-RateLimit-Limit": str(limit if limit is not None else status.limit),
        "X-RateLimit-Remaining": str(status.remaining),
        "X-RateLimit-Reset": str(math.ceil(status.reset)),
    }


def exceeded_headers(error: RateLimitExceededError) -> Dict[str, str]:
    """Headers sent with a 429 response."""
    headers = {
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": str(math.ceil(error.reset_time)),
        "Retry-After": str(error.retry_after_seconds),
    }
    if error.limit is not None:
        headers["X-RateLimit-Limit"] = str(error.limit)
    return headers
