"""
Logging for opsgate, built on loguru.

Library modules log through ``from loguru import logger``. The application
calls setup_logging() once at startup, which swaps loguru's default stderr
sink for the configured ones.
"""

from typing import Any, Dict, Optional, Union

from .setup import (
    PROFILES,
    LogConfig,
    build_config,
    configure_logging,
    get_logger,
    json_formatter,
    resolve_environment,
)

_active: Optional[LogConfig] = None


def setup_logging(
    config: Optional[Union[LogConfig, Dict[str, Any]]] = None,
    environment: Optional[str] = None,
    force_reconfigure: bool = False,
) -> LogConfig:
    """
    Configure sinks once per process.

    Later calls return the active configuration unless force_reconfigure
    is set.
    """
    global _active
    if _active is None or force_reconfigure:
        _active = configure_logging(config, environment)
    return _active


def get_current_config() -> Optional[LogConfig]:
    return _active


def is_configured() -> bool:
    return _active is not None


__all__ = [
    "LogConfig",
    "PROFILES",
    "build_config",
    "configure_logging",
    "get_current_config",
    "get_logger",
    "is_configured",
    "json_formatter",
    "resolve_environment",
    "setup_logging",
]
