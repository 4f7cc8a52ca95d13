"""opsgate: request rate limiting for the operations API."""

from opsgate.config import Settings, get_settings, load_config, reload_settings_cache
from opsgate.exceptions import ConfigurationError, OpsGateError

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "load_config",
    "reload_settings_cache",
    "OpsGateError",
    "ConfigurationError",
    "__version__",
]
