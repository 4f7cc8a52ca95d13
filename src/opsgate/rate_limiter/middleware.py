"""
HTTP integration for FastAPI and Starlette applications.

Three ways to put a limiter in front of a handler:

- with_rate_limit(): wrap a single request handler with a guard
- RateLimitDependency: a FastAPI dependency, paired with install_exception_handlers()
- RateLimitMiddleware: apply one limiter to every non-excluded path
"""

import inspect
from typing import Awaitable, Callable, Iterable, Optional, Union

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .algorithms import RateLimitStatus
from .core import RateLimiter
from .exceptions import RateLimitExceededError
from .utils import ClientIdentifier, exceeded_headers, rate_limit_headers, resolve_identifier

KeyFunc = Callable[[Request], str]
Handler = Callable[[Request], Union[Response, Awaitable[Response]]]

DEFAULT_EXCLUDE_PATHS = ("/health", "/docs", "/openapi.json")


def rate_limit_exceeded_response(error: RateLimitExceededError) -> JSONResponse:
    """
    Build the 429 JSON envelope for a rejected request.

    resetTime is reported in epoch milliseconds; the X-RateLimit-Reset header
    carries epoch seconds.
    """
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "success": False,
            "message": "Rate limit exceeded",
            "error": error.code,
            "resetTime": int(error.reset_time * 1000),
        },
        headers=exceeded_headers(error),
    )


async def _rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceededError
) -> JSONResponse:
    return rate_limit_exceeded_response(exc)


def install_exception_handlers(app: FastAPI) -> None:
    """Render RateLimitExceededError raised anywhere in app as a 429 envelope."""
    app.add_exception_handler(RateLimitExceededError, _rate_limit_exceeded_handler)


def with_rate_limit(
    limiter: RateLimiter,
    limit: Optional[int],
    handler: Handler,
    key_func: Optional[KeyFunc] = None,
) -> Callable[[Request], Awaitable[Response]]:
    """
    Guard a request handler with a limiter.

    The limit is checked before the handler runs. A rejected request gets the
    429 envelope; any other error propagates unchanged.

    Args:
        limiter: Limiter to check against
        limit: Per-call limit (None for the limiter's default)
        handler: Request handler, sync or async
        key_func: Identifier extraction (client IP by default)
    """
    key_func = key_func or ClientIdentifier.get_client_ip
    is_async = inspect.iscoroutinefunction(handler)

    async def guarded(request: Request) -> Response:
        try:
            limiter.check(key_func(request), limit=limit)
        except RateLimitExceededError as e:
            return rate_limit_exceeded_response(e)

        if is_async:
            return await handler(request)
        return await run_in_threadpool(handler, request)

    guarded.__name__ = getattr(handler, "__name__", "guarded")
    guarded.__doc__ = getattr(handler, "__doc__", None)
    return guarded


def add_rate_limit_headers(
    response: Response,
    limiter: RateLimiter,
    request: Request,
    limit: Optional[int] = None,
    token: Optional[str] = None,
) -> Response:
    """Copy the caller's current allowance into X-RateLimit-* headers."""
    current = limiter.get_status(resolve_identifier(request, token))
    response.headers.update(rate_limit_headers(current, limit))
    return response


class RateLimitDependency:
    """
    FastAPI dependency enforcing a limiter on a route.

    The admitted status is stored on request.state.rate_limit. Rejections
    raise RateLimitExceededError, rendered by install_exception_handlers().

        api_limit = RateLimitDependency(limiter, limit=100)

        @app.get("/projects", dependencies=[Depends(api_limit)])
        async def list_projects(): ...
    """

    def __init__(
        self,
        limiter: RateLimiter,
        limit: Optional[int] = None,
        cost: int = 1,
        key_func: Optional[KeyFunc] = None,
    ):
        self.limiter = limiter
        self.limit = limit
        self.cost = cost
        self.key_func = key_func or ClientIdentifier.get_client_ip

    def __call__(self, request: Request) -> RateLimitStatus:
        result = self.limiter.check(self.key_func(request), limit=self.limit, cost=self.cost)
        request.state.rate_limit = result
        return result


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Apply one limiter to every request whose path is not excluded.

    Admitted responses carry X-RateLimit-* headers. When the limiter itself
    fails, the request is let through if fail_open is set, otherwise a 503
    is returned.
    """

    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        limit: Optional[int] = None,
        exclude_paths: Iterable[str] = DEFAULT_EXCLUDE_PATHS,
        key_func: Optional[KeyFunc] = None,
        enable_headers: bool = True,
        fail_open: bool = True,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.limit = limit
        self.exclude_paths = tuple(exclude_paths)
        self.key_func = key_func or ClientIdentifier.get_client_ip
        self.enable_headers = enable_headers
        self.fail_open = fail_open

    def _should_exclude_path(self, path: str) -> bool:
        return any(
            path == excluded or path.startswith(excluded.rstrip("/") + "/")
            for excluded in self.exclude_paths
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self._should_exclude_path(request.url.path):
            return await call_next(request)

        try:
            admitted = self.limiter.check(self.key_func(request), limit=self.limit)
        except RateLimitExceededError as e:
            return rate_limit_exceeded_response(e)
        except Exception as e:
            logger.exception("Rate limiting middleware error on '{}': {}", self.limiter.name, e)
            if self.fail_open:
                logger.warning("Rate limiter failed, allowing request (fail_open=True)")
                return await call_next(request)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "success": False,
                    "message": "Rate limiting service unavailable",
                    "error": "RATE_LIMITER_ERROR",
                },
            )

        response = await call_next(request)
        if self.enable_headers:
            response.headers.update(rate_limit_headers(admitted))
        return response
