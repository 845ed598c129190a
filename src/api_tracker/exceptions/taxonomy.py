"""Process exit codes for fatal errors.

Fatal errors abort the run with a code chosen by category:

    0 - success
    2 - undifferentiated error
    3 - analyzer executable not found
    4 - profile can't be accessed
    5 - malformed profile or settings
    9 - analyzer older than the supported minimum
"""

from __future__ import annotations

from enum import IntEnum

from .analysis import AnalyzerMissingError, AnalyzerVersionError
from .config import ConfigurationError, ProfileAccessError


class ExitCode(IntEnum):
    """Process exit codes, one per fatal error category."""

    SUCCESS = 0
    ERROR = 2
    NOT_FOUND = 3
    ACCESS_ERROR = 4
    CONFIG_ERROR = 5
    MODULE_ERROR = 9


def exit_code_for(exc: BaseException) -> ExitCode:
    """Map a fatal exception to its process exit code."""
    if isinstance(exc, AnalyzerMissingError):
        return ExitCode.NOT_FOUND
    if isinstance(exc, AnalyzerVersionError):
        return ExitCode.MODULE_ERROR
    if isinstance(exc, ProfileAccessError):
        return ExitCode.ACCESS_ERROR
    if isinstance(exc, ConfigurationError):
        return ExitCode.CONFIG_ERROR
    return ExitCode.ERROR
