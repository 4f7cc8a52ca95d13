"""
Base exception classes for opsgate.

All package-specific exceptions inherit from OpsGateError so callers can
handle them uniformly and render them as JSON envelopes.
"""

from typing import Any, Dict, Optional


class OpsGateError(Exception):
    """
    Base exception class for all opsgate errors.

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        details: Additional details about the error
    """

    def __init__(
        self,
        message: str = "",
        code: str = "OPSGATE_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a new opsgate exception.

        Args:
            message: Human-readable error message
            code: Error code for programmatic handling
            details: Additional details about the error
        """
        self.message = message or "An unexpected error occurred"
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the exception to a dictionary.

        Returns:
            Dictionary representation of the exception
        """
        return {"code": self.code, "message": self.message, "details": self.details}


class ConfigurationError(OpsGateError):
    """Raised when application settings cannot be loaded or are invalid."""

    def __init__(
        self,
        message: str = "",
        code: str = "CONFIGURATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Invalid configuration", code=code, details=details
        )
