"""
loguru sinks for opsgate.

A console sink writing either coloured text or one JSON object per line,
and an optional rotating file sink. Per-environment profiles supply the
defaults; an explicit dict is merged over the profile, an explicit LogConfig
is used as is.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger

PLAIN_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
LOG_FILE_NAME = "opsgate.log"

# Overlays on the LogConfig defaults
PROFILES: Dict[str, Dict[str, Any]] = {
    "development": {"level": "DEBUG", "colorize": True, "debug": True},
    "production": {"level": "INFO", "json_logs": True, "log_dir": "logs"},
    "testing": {"level": "WARNING"},
}

_ALIASES = {"dev": "development", "prod": "production", "test": "testing"}
_INTERNAL_EXTRA = ("logger_name", "serialized")


@dataclass
class LogConfig:
    """Sink settings. Setting log_dir enables the file sink."""

    level: str = "INFO"
    json_logs: bool = False
    console: bool = True
    colorize: bool = False
    debug: bool = False  # loguru backtrace/diagnose
    log_dir: Optional[str] = None
    rotation: str = "1 day"
    retention: str = "30 days"
    extra: Dict[str, Any] = field(default_factory=dict)


def _record_payload(record) -> Dict[str, Any]:
    payload = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["extra"].get("logger_name", record["name"]),
        "message": record["message"],
        "location": f"{record['name']}:{record['function']}:{record['line']}",
    }
    bound = {k: v for k, v in record["extra"].items() if k not in _INTERNAL_EXTRA}
    if bound:
        payload["extra"] = bound
    if record["exception"] is not None:
        exc_type, exc_value, _ = record["exception"]
        payload["exception"] = f"{getattr(exc_type, '__name__', exc_type)}: {exc_value}"
    return payload


def json_formatter(record) -> str:
    """
    loguru format callable producing one JSON object per line.

    The JSON is stashed in record["extra"] and referenced from the returned
    template, so braces in the payload are never parsed as format fields.
    """
    record["extra"]["serialized"] = json.dumps(
        _record_payload(record), default=str, ensure_ascii=False
    )
    return "{extra[serialized]}\n"


def resolve_environment(environment: Optional[str] = None) -> str:
    """Canonical profile name for environment, falling back to APP_ENV."""
    name = (environment or os.getenv("APP_ENV", "development")).lower()
    name = _ALIASES.get(name, name)
    return name if name in PROFILES else "development"


def build_config(
    config: Optional[Union[LogConfig, Dict[str, Any]]] = None,
    environment: Optional[str] = None,
) -> LogConfig:
    if isinstance(config, LogConfig):
        return config
    overrides = {**PROFILES[resolve_environment(environment)], **(config or {})}
    return LogConfig(**overrides)


def configure_logging(
    config: Optional[Union[LogConfig, Dict[str, Any]]] = None,
    environment: Optional[str] = None,
) -> LogConfig:
    """
    Replace every loguru sink with the ones described by config.

    Args:
        config: LogConfig, or a dict merged over the environment profile
        environment: Profile name ('development', 'production', 'testing' or an alias)

    Returns:
        The LogConfig that was applied
    """
    final = build_config(config, environment)
    final.level = final.level.upper()

    logger.remove()
    if final.extra:
        logger.configure(extra=final.extra)

    fmt = json_formatter if final.json_logs else PLAIN_FORMAT
    common = {"level": final.level, "backtrace": final.debug, "diagnose": final.debug}

    if final.console:
        logger.add(
            sys.stdout, format=fmt, colorize=final.colorize and not final.json_logs, **common
        )

    if final.log_dir:
        log_dir = Path(final.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / LOG_FILE_NAME),
            format=fmt,
            rotation=final.rotation,
            retention=final.retention,
            compression="gz",
            **common,
        )

    logger.debug(
        "Logging configured (level={}, json={}, file={})",
        final.level,
        final.json_logs,
        final.log_dir or "off",
    )
    return final


def get_logger(name: Optional[str] = None):
    """loguru logger bound to name, reported as "logger" in JSON output."""
    return logger.bind(logger_name=name or "opsgate")
