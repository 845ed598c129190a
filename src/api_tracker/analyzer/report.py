"""Parser for the analyzer's report header.

The first line of every compatibility report is a run of ``key:value;``
fields, e.g.::

    <!-- kind:binary;verdict:incompatible;affected:3.2;added:10;removed:2;
    type_problems_high:1;method_problems_medium:2;changed_constants:1;
    checked_methods:340;checked_types:41;tool_version:2.4 -->

Nothing past the fields read here leaks into the records.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

_FIELD = re.compile(r"([A-Za-z_][\w]*):([^;]*);")
_PROBLEMS = re.compile(r"\w+_problems_\w+\Z")


@dataclass(frozen=True)
class ReportHeader:
    """Metrics read from one report header line."""

    checked_methods: int = 0
    checked_types: int = 0
    affected: float = 0.0
    added: int = 0
    removed: int = 0
    problems: int = 0
    changed_constants: int = 0

    @property
    def total_problems(self) -> int:
        """Binary report total: every problem field plus changed constants."""
        return self.problems + self.changed_constants

    @property
    def source_total_problems(self) -> int:
        """Source report total: problem fields only."""
        return self.problems

    @property
    def is_empty(self) -> bool:
        """No methods or no types were checked; the report says nothing."""
        return not self.checked_methods or not self.checked_types


def _number(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError:
        return 0.0


def parse_report_header(line: str) -> ReportHeader:
    """Parse a ``key:value;`` header line. Absent or garbled fields read as zero."""
    fields = {}
    problems = 0.0
    for key, value in _FIELD.findall(line):
        if _PROBLEMS.match(key):
            problems += _number(value)
        elif key not in fields:
            fields[key] = value

    return ReportHeader(
        checked_methods=int(_number(fields.get("checked_methods", "0"))),
        checked_types=int(_number(fields.get("checked_types", "0"))),
        affected=_number(fields.get("affected", "0")),
        added=int(_number(fields.get("added", "0"))),
        removed=int(_number(fields.get("removed", "0"))),
        problems=int(problems),
        changed_constants=int(_number(fields.get("changed_constants", "0"))),
    )


def read_first_line(path: Path) -> str:
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.readline().rstrip("\n")


def read_report_header(path: Path) -> ReportHeader:
    return parse_report_header(read_first_line(path))
