"""
Application factory.

The lifespan builds the preset limiter registry, starts every limiter's
cleanup task and closes them on shutdown, so no timer outlives the app.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, Request
from loguru import logger

from opsgate.config import Settings, get_settings
from opsgate.logging import setup_logging
from opsgate.rate_limiter import (
    LimiterRegistry,
    RateLimitDependency,
    build_default_registry,
    install_exception_handlers,
)
from opsgate.rate_limiter.utils import resolve_identifier


def get_registry(request: Request) -> LimiterRegistry:
    return request.app.state.limiters


def _api_limit(request: Request):
    return RateLimitDependency(get_registry(request).get("api"))(request)


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[LimiterRegistry] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use (loaded from the environment when omitted)
        registry: Prebuilt limiter registry (built from settings when omitted)
    """
    settings = settings or get_settings()
    setup_logging(
        {"level": settings.LOG_LEVEL, "json_logs": settings.JSON_LOGS},
        environment=settings.APP_ENV,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        limiters = registry if registry is not None else build_default_registry(settings)
        app.state.limiters = limiters
        logger.info("Starting opsgate with limiters: {}", ", ".join(limiters.names()))
        limiters.start_all()
        try:
            yield
        finally:
            logger.info("Shutting down opsgate")
            limiters.close_all()

    app = FastAPI(title="opsgate", lifespan=lifespan)
    install_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {"success": True, "status": "ok"}

    @app.get("/rate-limit/status", dependencies=[Depends(_api_limit)])
    async def rate_limit_status(request: Request):
        limiter = get_registry(request).get("api")
        current = limiter.get_status(resolve_identifier(request))
        return {"success": True, "data": current.to_dict()}

    return app
