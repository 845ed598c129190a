"""Tests for the analyzer report header parser."""

from api_tracker.analyzer import parse_report_header, read_report_header


class TestParseReportHeader:
    """The key:value; micro-format of the first report line."""

    def test_full_binary_header(self):
        header = parse_report_header(
            "<!-- kind:binary;verdict:incompatible;affected:3.2;added:10;removed:2;"
            "type_problems_high:1;type_problems_medium:0;method_problems_high:2;"
            "method_problems_low:1;changed_constants:4;checked_methods:340;"
            "checked_types:41;tool_version:2.4 -->"
        )
        assert header.affected == 3.2
        assert header.added == 10
        assert header.removed == 2
        assert header.problems == 4
        assert header.total_problems == 8
        assert header.source_total_problems == 4
        assert header.checked_methods == 340
        assert header.checked_types == 41
        assert not header.is_empty

    def test_missing_fields_read_as_zero(self):
        header = parse_report_header("<!-- kind:source;checked_methods:5;checked_types:1; -->")
        assert header.affected == 0.0
        assert header.added == 0
        assert header.total_problems == 0

    def test_garbled_values_read_as_zero(self):
        header = parse_report_header("affected:n/a;added:;checked_methods:1;checked_types:1;")
        assert header.affected == 0.0
        assert header.added == 0

    def test_zero_checked_is_empty(self):
        assert parse_report_header("checked_methods:0;checked_types:12;").is_empty
        assert parse_report_header("checked_methods:12;checked_types:0;").is_empty
        assert parse_report_header("").is_empty

    def test_first_occurrence_wins(self):
        header = parse_report_header("added:3;added:7;checked_methods:1;checked_types:1;")
        assert header.added == 3


class TestReadReportHeader:
    """Only the first line of the file is read."""

    def test_reads_first_line(self, tmp_path):
        report = tmp_path / "report.html"
        report.write_text(
            "<!-- affected:50;checked_methods:2;checked_types:1; -->\n<p>affected:99;</p>\n",
            encoding="utf-8",
        )
        assert read_report_header(report).affected == 50.0
