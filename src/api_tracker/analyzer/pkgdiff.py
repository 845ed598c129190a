"""Run the package differ on the source packages of two versions."""

from __future__ import annotations

import re
import shlex
import subprocess
from pathlib import Path
from typing import Optional

from ..exceptions import AnalyzerFailedError, AnalyzerMissingError, AnalyzerTimeoutError
from ..logging_config import get_logger
from ..store.models import PackageDiffRecord
from .adapter import Runner

logger = get_logger(__name__)

_CHANGED = re.compile(r"CHANGED\s*\((.+?)%\)")


class PkgDiffAdapter:
    """Invokes ``pkgdiff -report-path <report> <old> <new>``."""

    def __init__(self, command: str = "pkgdiff", timeout: Optional[float] = None, runner: Runner = subprocess.run):
        self.command = command
        self.timeout = timeout
        self.runner = runner

    def diff(self, source1: Path, source2: Path, report_path: Path) -> PackageDiffRecord:
        """Diff two source packages.

        Raises:
            AnalyzerMissingError: pkgdiff is not installed
            AnalyzerFailedError: No report was written
        """
        report_path = Path(report_path)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = [self.command, "-report-path", str(report_path), str(source1), str(source2)]
        logger.debug("executing %s", shlex.join(cmd))
        try:
            result = self.runner(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise AnalyzerMissingError(self.command) from e
        except subprocess.TimeoutExpired as e:
            raise AnalyzerTimeoutError(self.command, self.timeout or 0) from e

        if not report_path.is_file():
            raise AnalyzerFailedError(self.command, "no package diff report", output=result.stderr or "")

        match = _CHANGED.search(result.stdout or "")
        changed = None
        if match:
            try:
                changed = float(match.group(1))
            except ValueError:
                logger.debug("Unreadable pkgdiff change rate %r", match.group(1))
        return PackageDiffRecord(path=str(report_path), changed=changed)
