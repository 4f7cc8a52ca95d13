from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Dict

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from opsgate.exceptions import ConfigurationError

_DEFAULTS: Dict[str, str] = {
    "APP_ENV": "development",
    "LOG_LEVEL": "INFO",
    "JSON_LOGS": "false",
    "RATE_LIMIT_WINDOW_SECONDS": "60",
    "RATE_LIMIT_CLEANUP_SECONDS": "60",
    "RATE_LIMIT_AUTH": "100",
    "RATE_LIMIT_API": "500",
    "RATE_LIMIT_PUBLIC": "1000",
    "RATE_LIMIT_SENSITIVE": "10",
    "RATE_LIMIT_UPLOAD": "50",
}

_TRUTHY = {"1", "true", "yes", "on"}


def _find_env_file(start: Path | None = None) -> Path | None:
    """Nearest .env in start (the working directory) or one of its parents."""
    start = start or Path.cwd()
    for directory in (start, *start.parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return candidate
    return None


def load_config(env_file: Path | None = None) -> Dict[str, str]:
    """
    Raw opsgate settings as strings.

    Defaults are overridden by the .env file, which is overridden by the
    process environment. Unrelated variables are ignored.
    """
    env_file = env_file or _find_env_file()
    file_values = dotenv_values(env_file) if env_file else {}

    merged = dict(_DEFAULTS)
    for source in (file_values, os.environ):
        merged.update({k: v for k, v in source.items() if k in _DEFAULTS and v is not None})
    return merged


class Settings(BaseModel):
    APP_ENV: str
    LOG_LEVEL: str
    JSON_LOGS: bool
    RATE_LIMIT_WINDOW_SECONDS: float = Field(gt=0)
    RATE_LIMIT_CLEANUP_SECONDS: float = Field(gt=0)
    RATE_LIMIT_AUTH: int = Field(gt=0)
    RATE_LIMIT_API: int = Field(gt=0)
    RATE_LIMIT_PUBLIC: int = Field(gt=0)
    RATE_LIMIT_SENSITIVE: int = Field(gt=0)
    RATE_LIMIT_UPLOAD: int = Field(gt=0)

    model_config = ConfigDict(extra="ignore")

    def preset_limits(self) -> Dict[str, int]:
        return {
            "auth": self.RATE_LIMIT_AUTH,
            "api": self.RATE_LIMIT_API,
            "public": self.RATE_LIMIT_PUBLIC,
            "sensitive": self.RATE_LIMIT_SENSITIVE,
            "upload": self.RATE_LIMIT_UPLOAD,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    raw = load_config()
    raw["JSON_LOGS"] = str(raw.get("JSON_LOGS", "false")).lower() in _TRUTHY
    try:
        return Settings(**raw)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid opsgate settings", details={"errors": e.errors()}
        ) from e


def reload_settings_cache() -> None:
    get_settings.cache_clear()  # type: ignore[attr-defined]
