"""Configuration exceptions: profile documents, run settings."""

from pathlib import Path
from typing import Any

from .base import ApiTrackerError


class ConfigurationError(ApiTrackerError):
    """Base class for configuration-related errors."""

    pass


class ProfileAccessError(ConfigurationError):
    """Raised when the profile document cannot be read."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Can't access profile: {path}", details={"path": str(path), "reason": reason})
        self.path = path
        self.reason = reason


class InvalidProfileError(ConfigurationError):
    """Raised when the profile is malformed or incomplete."""

    def __init__(self, reason: str, field: str = ""):
        details = {"reason": reason}
        if field:
            details["field"] = field
        super().__init__(f"Invalid profile: {reason}", details=details)
        self.reason = reason
        self.field = field


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason
