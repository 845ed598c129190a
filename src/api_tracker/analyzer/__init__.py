"""Boundary to the external analysis tools."""

from .adapter import AnalyzerAdapter, version_tuple
from .options import AnalyzerOptions, options_for
from .pkgdiff import PkgDiffAdapter
from .report import ReportHeader, parse_report_header, read_first_line, read_report_header

__all__ = [
    "AnalyzerAdapter",
    "AnalyzerOptions",
    "PkgDiffAdapter",
    "ReportHeader",
    "options_for",
    "parse_report_header",
    "read_first_line",
    "read_report_header",
    "version_tuple",
]
