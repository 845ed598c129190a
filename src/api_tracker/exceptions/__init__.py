"""Exception hierarchy for API Tracker."""

from .analysis import (
    AnalysisError,
    AnalyzerEnvironmentError,
    AnalyzerFailedError,
    AnalyzerMissingError,
    AnalyzerTimeoutError,
    AnalyzerVersionError,
    InsufficientDataError,
    MissingArchiveError,
    MissingInstallError,
    ZeroSymbolsCheckedError,
)
from .base import ApiTrackerError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidProfileError,
    ProfileAccessError,
)
from .taxonomy import ExitCode, exit_code_for

__all__ = [
    "ApiTrackerError",
    "AnalysisError",
    "AnalyzerEnvironmentError",
    "AnalyzerMissingError",
    "AnalyzerVersionError",
    "AnalyzerFailedError",
    "AnalyzerTimeoutError",
    "MissingInstallError",
    "MissingArchiveError",
    "InsufficientDataError",
    "ZeroSymbolsCheckedError",
    "ConfigurationError",
    "ProfileAccessError",
    "InvalidProfileError",
    "InvalidConfigError",
    "ExitCode",
    "exit_code_for",
]
