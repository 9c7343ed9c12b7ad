"""Tests for prpkit.lib.reports."""

import xml.etree.ElementTree as ET
from datetime import datetime

import pytest

from prpkit.lib.reports import (
    render_markdown,
    render_html,
    render_junit,
    resolve_formats,
    write_reports,
)
from prpkit.lib.tap import parse_tap

GENERATED = datetime(2025, 1, 2, 3, 4, 5)

TAP = """\
1..3
ok 1 first <works>
not ok 2 second & fails
# expected 1 got 2
ok 3 third # SKIP not now
"""


@pytest.fixture
def report():
    return parse_tap(TAP)


class TestMarkdown:
    """Markdown report."""

    def test_summary(self, report):
        text = render_markdown(report, GENERATED)
        assert text.startswith("# Test Results Summary\n")
        assert "Generated: 2025-01-02 03:04:05" in text
        assert "- Total Tests: 3" in text
        assert "- Passed: 2" in text
        assert "- Failed: 1" in text
        assert "- Success Rate: 66.67%" in text

    def test_failed_and_details(self, report):
        text = render_markdown(report, GENERATED)
        assert "## Failed Tests\n- not ok 2 second & fails\n" in text
        assert "✅ Test 1: first <works>" in text
        assert "❌ Test 2: second & fails\n   expected 1 got 2" in text

    def test_no_failed_section_when_all_pass(self):
        text = render_markdown(parse_tap("ok 1 a\n"), GENERATED)
        assert "## Failed Tests" not in text
        assert "- Success Rate: 100.00%" in text

    def test_empty_report(self):
        text = render_markdown(parse_tap(""), GENERATED)
        assert "- Success Rate: 0.00%" in text


class TestHtml:
    """HTML report."""

    def test_escapes_text(self, report):
        page = render_html(report, GENERATED)
        assert "first &lt;works&gt;" in page
        assert "second &amp; fails" in page
        assert "<works>" not in page

    def test_cards_and_rows(self, report):
        page = render_html(report, GENERATED)
        assert page.startswith("<!DOCTYPE html>")
        assert "66.67%" in page
        assert page.count("test-item test-failed") == 1
        assert page.count("test-item test-passed") == 2


class TestJunit:
    """JUnit XML report."""

    def test_structure(self, report):
        xml = render_junit(report, GENERATED)
        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        root = ET.fromstring(xml.split("\n", 1)[1])
        suite = root.find("testsuite")
        assert suite.get("name") == "GitHub Actions Tests"
        assert suite.get("tests") == "3"
        assert suite.get("failures") == "1"
        assert suite.get("skipped") == "1"
        cases = suite.findall("testcase")
        assert [c.get("classname") for c in cases] == ["actions.test"] * 3

    def test_failure_and_skip(self, report):
        root = ET.fromstring(render_junit(report, GENERATED).split("\n", 1)[1])
        cases = root.find("testsuite").findall("testcase")
        failure = cases[1].find("failure")
        assert failure.get("message") == "Test failed"
        assert "not ok 2 second & fails" in failure.text
        assert "expected 1 got 2" in failure.text
        assert cases[2].find("skipped") is not None
        assert cases[0].find("failure") is None

    def test_custom_suite_name(self, report):
        assert 'name="Unit"' in render_junit(report, GENERATED, suite_name="Unit")


class TestWriteReports:
    """Writing reports for a TAP file."""

    def test_resolve_formats(self):
        assert resolve_formats("md") == ["markdown"]
        assert resolve_formats("xml") == ["junit"]
        assert resolve_formats("all") == ["markdown", "html", "junit"]

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown format: pdf"):
            resolve_formats("pdf")

    def test_writes_all(self, tmp_path):
        tap = tmp_path / "results.tap"
        tap.write_text(TAP)
        written = write_reports(tap, tmp_path / "reports", generated_at=GENERATED)
        assert sorted(p.name for p in written) == ["test-results.html", "test-results.md", "test-results.xml"]
        assert all(p.exists() for p in written)

    def test_single_format(self, tmp_path):
        tap = tmp_path / "results.tap"
        tap.write_text(TAP)
        written = write_reports(tap, tmp_path, fmt="junit", generated_at=GENERATED)
        assert [p.name for p in written] == ["test-results.xml"]

    def test_missing_tap(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="TAP file not found"):
            write_reports(tmp_path / "none.tap", tmp_path)
