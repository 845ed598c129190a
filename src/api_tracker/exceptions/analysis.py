"""Analysis-related exceptions: the external analyzer, install trees, archives."""

from pathlib import Path
from typing import Dict, Optional

from .base import ApiTrackerError


class AnalysisError(ApiTrackerError):
    """Base class for analysis-related errors."""
    pass


class AnalyzerEnvironmentError(AnalysisError):
    """The analyzer can't be used at all. Fatal at startup."""
    pass


class AnalyzerMissingError(AnalyzerEnvironmentError):
    """Raised when the analyzer executable can't be found."""

    def __init__(self, command: str):
        super().__init__(f"Cannot find '{command}'", details={"command": command})
        self.command = command


class AnalyzerVersionError(AnalyzerEnvironmentError):
    """Raised when the analyzer is older than the required version."""

    def __init__(self, command: str, found: str, required: str):
        super().__init__(
            f"The version of '{command}' should be {required} or newer",
            details={"command": command, "found": found, "required": required},
        )
        self.command = command
        self.found = found
        self.required = required


class AnalyzerFailedError(AnalysisError):
    """Raised when an analyzer run did not produce its output files."""

    def __init__(self, command: str, reason: str, output: str = ""):
        super().__init__(f"Analyzer run failed: {reason}", details={"command": command})
        self.command = command
        self.reason = reason
        self.output = output


class AnalyzerTimeoutError(AnalyzerFailedError):
    """Raised when an analyzer run exceeds the configured timeout."""

    def __init__(self, command: str, timeout: float):
        super().__init__(command, f"timed out after {timeout:g}s")
        self.timeout = timeout


class MissingInstallError(AnalysisError):
    """Raised when a version's install tree is not on disk."""

    def __init__(self, version: str, installed: Optional[Path]):
        super().__init__(
            f"{version} is not installed",
            details={"version": version, "installed": str(installed or "")},
        )
        self.version = version
        self.installed = installed


class MissingArchiveError(AnalysisError):
    """Raised when an install tree contains no archives to analyze."""

    def __init__(self, version: str, installed: Path):
        super().__init__(
            f"Can't find archives for {version}",
            details={"version": version, "installed": str(installed)},
        )
        self.version = version
        self.installed = installed


class InsufficientDataError(AnalysisError):
    """Raised when there's not enough data for analysis."""

    def __init__(self, reason: str, minimum_required: Optional[int] = None):
        details: Dict[str, str] = {"reason": reason}
        if minimum_required is not None:
            details["minimum_required"] = str(minimum_required)

        super().__init__(f"Insufficient data for analysis: {reason}", details=details)
        self.reason = reason
        self.minimum_required = minimum_required


class ZeroSymbolsCheckedError(InsufficientDataError):
    """The analyzer checked no methods or no types; the comparison is discarded."""

    def __init__(self, checked_methods: int, checked_types: int):
        super().__init__(
            f"zero methods or types checked (methods={checked_methods}, types={checked_types})",
            minimum_required=1,
        )
        self.checked_methods = checked_methods
        self.checked_types = checked_types
