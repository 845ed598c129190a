"""Run the external compatibility analyzer.

The adapter builds command lines, runs them and turns the produced files
into records. It never decides what to cache; that is the pipeline's job.
"""

from __future__ import annotations

import re
import shlex
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..exceptions import (
    AnalyzerFailedError,
    AnalyzerMissingError,
    AnalyzerTimeoutError,
    AnalyzerVersionError,
    ZeroSymbolsCheckedError,
)
from ..logging_config import get_logger
from ..store.models import ApiDumpRecord, PairComparisonRecord
from .options import AnalyzerOptions
from .report import read_report_header

logger = get_logger(__name__)

DEFAULT_COMMAND = "japi-compliance-checker"
MINIMUM_VERSION = "1.8"
# Affected symbols listed per problem in the reports
LIMIT_AFFECTED = 5

_LANGUAGE = re.compile(r"""['"]Language['"]\s*(?:=>|:)\s*['"]([^'"]*)['"]""")

Runner = Callable[..., subprocess.CompletedProcess]


def version_tuple(text: str) -> tuple[int, ...]:
    return tuple(int(part) for part in re.findall(r"\d+", text))


class AnalyzerAdapter:
    """Invokes ``japi-compliance-checker`` (or a compatible command).

    Args:
        command: Analyzer executable
        timeout: Seconds before a run is abandoned; None waits forever
        runner: ``subprocess.run`` compatible callable
    """

    def __init__(
        self,
        command: str = DEFAULT_COMMAND,
        timeout: Optional[float] = None,
        runner: Runner = subprocess.run,
    ) -> None:
        self.command = command
        self.timeout = timeout
        self.runner = runner

    def _run(self, args: Sequence[str]) -> subprocess.CompletedProcess:
        cmd = [self.command, *args]
        logger.debug("executing %s", shlex.join(cmd))
        try:
            return self.runner(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise AnalyzerMissingError(self.command) from e
        except subprocess.TimeoutExpired as e:
            raise AnalyzerTimeoutError(self.command, self.timeout or 0) from e

    def check_version(self, minimum: str = MINIMUM_VERSION) -> str:
        """Return the analyzer version.

        Raises:
            AnalyzerMissingError: The command can't be run or reports nothing
            AnalyzerVersionError: It is older than ``minimum``
        """
        result = self._run(["-dumpversion"])
        found = (result.stdout or "").strip()
        if not found or not version_tuple(found):
            raise AnalyzerMissingError(self.command)
        if version_tuple(found) < version_tuple(minimum):
            raise AnalyzerVersionError(self.command, found, minimum)
        logger.debug("%s %s", self.command, found)
        return found

    def dump(self, version: str, archive_path: Path, output_path: Path, module: str) -> ApiDumpRecord:
        """Dump the API of one archive and count its symbols.

        Raises:
            AnalyzerFailedError: No dump was written
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        result = self._run(
            ["-l", module, "-dump", str(archive_path), "-dump-path", str(output_path), "-vnum", version]
        )
        if not output_path.is_file():
            raise AnalyzerFailedError(
                self.command, f"can't create API dump for {archive_path}", output=result.stderr or ""
            )

        return ApiDumpRecord(
            path=str(output_path),
            archive=str(archive_path),
            total_symbols=self.count_symbols(output_path),
            lang=_read_language(output_path),
        )

    def count_symbols(self, dump_path: Path, options: Optional[AnalyzerOptions] = None) -> int:
        """Number of methods in a dump, after the filters of ``options`` if given."""
        args: List[str] = ["-count-methods", str(dump_path)]
        if options is not None:
            args += options.filter_args()
        result = self._run(args)

        lines = [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]
        try:
            return int(lines[-1])
        except (IndexError, ValueError):
            raise AnalyzerFailedError(
                self.command, f"can't count methods in {dump_path}", output=result.stdout or ""
            )

    def compare(
        self,
        old_dump: Path,
        new_dump: Path,
        bin_report: Path,
        src_report: Path,
        module: str,
        options: Optional[AnalyzerOptions] = None,
    ) -> PairComparisonRecord:
        """Compare two dumps, producing a binary and a source report.

        Raises:
            AnalyzerFailedError: A report is missing
            ZeroSymbolsCheckedError: The analyzer checked nothing; the
                result must be discarded
        """
        bin_report, src_report = Path(bin_report), Path(src_report)
        args = [
            "-l", module,
            "-binary", "-source",
            "-old", str(old_dump),
            "-new", str(new_dump),
            "-bin-report-path", str(bin_report),
            "-src-report-path", str(src_report),
        ]
        if options is not None:
            args += options.compare_args()
        args += ["-limit-affected", str(LIMIT_AFFECTED)]

        result = self._run(args)

        if not bin_report.is_file() or not src_report.is_file():
            raise AnalyzerFailedError(
                self.command, f"no reports for {old_dump} and {new_dump}", output=result.stderr or ""
            )

        binary = read_report_header(bin_report)
        if binary.is_empty:
            raise ZeroSymbolsCheckedError(binary.checked_methods, binary.checked_types)
        source = read_report_header(src_report)

        return PairComparisonRecord(
            affected=binary.affected,
            added=binary.added,
            removed=binary.removed,
            total_problems=binary.total_problems,
            path=str(bin_report),
            archive1=str(old_dump),
            archive2=str(new_dump),
            source_affected=source.affected,
            source_total_problems=source.source_total_problems,
            source_report_path=str(src_report),
        )


def _read_language(dump_path: Path) -> Optional[str]:
    try:
        text = Path(dump_path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    match = _LANGUAGE.search(text)
    return match.group(1) if match else None
