"""
Render TAP results as Markdown, HTML and JUnit XML reports.
"""

import html
import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path

from prpkit.lib import actions
from prpkit.lib.tap import TapReport, TapResult, parse_tap_file

logger = logging.getLogger(__name__)

DEFAULT_SUITE_NAME = "GitHub Actions Tests"
JUNIT_CLASSNAME = "actions.test"

# CLI format name -> canonical format
FORMAT_ALIASES = {
    "markdown": "markdown",
    "md": "markdown",
    "html": "html",
    "junit": "junit",
    "xml": "junit",
}
VALID_FORMATS = sorted(FORMAT_ALIASES) + ["all"]

OUTPUT_FILES = {
    "markdown": "test-results.md",
    "html": "test-results.html",
    "junit": "test-results.xml",
}


def _label(result: TapResult, index: int) -> str:
    number = result.number if result.number is not None else index
    return f"Test {number}: {result.description}"


def _icon(result: TapResult) -> str:
    return "✅" if result.ok else "❌"


def render_markdown(report: TapReport, generated_at: datetime) -> str:
    """Markdown summary with failed-test list and per-test details."""
    lines = [
        "# Test Results Summary",
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "---",
        "",
        "## Summary",
        f"- Total Tests: {report.total}",
        f"- Passed: {report.passed}",
        f"- Failed: {report.failed}",
        f"- Success Rate: {report.success_rate:.2f}%",
        "",
    ]

    if report.failed:
        lines.append("## Failed Tests")
        for result in report.failures:
            lines.append(f"- {result.raw}")
        lines.append("")

    lines.append("## Test Details")
    for index, result in enumerate(report.results, 1):
        lines.append(f"{_icon(result)} {_label(result, index)}")
        for diagnostic in result.diagnostics:
            lines.append(f"   {diagnostic}")

    return "\n".join(lines) + "\n"


_HTML_STYLE = """\
        body { font-family: Arial, sans-serif; margin: 20px; background-color: #f5f5f5; }
        .container { max-width: 1200px; margin: 0 auto; background-color: white; padding: 20px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
        h1 { color: #333; }
        .summary { display: flex; gap: 20px; margin: 20px 0; }
        .stat-card { flex: 1; padding: 20px; border-radius: 8px; text-align: center; }
        .stat-card h3 { margin: 0 0 10px 0; }
        .stat-card .number { font-size: 2em; font-weight: bold; }
        .passed { background-color: #d4edda; color: #155724; }
        .failed { background-color: #f8d7da; color: #721c24; }
        .total { background-color: #cce5ff; color: #004085; }
        .rate { background-color: #fff3cd; color: #856404; }
        .test-list { margin-top: 20px; }
        .test-item { padding: 10px; margin: 5px 0; border-radius: 4px; }
        .test-passed { background-color: #d4edda; border-left: 4px solid #28a745; }
        .test-failed { background-color: #f8d7da; border-left: 4px solid #dc3545; }
        .timestamp { color: #666; font-size: 0.9em; }
"""


def render_html(report: TapReport, generated_at: datetime) -> str:
    """Standalone HTML page with stat cards and one row per test."""
    cards = [
        ("total", "Total Tests", str(report.total)),
        ("passed", "Passed", str(report.passed)),
        ("failed", "Failed", str(report.failed)),
        ("rate", "Success Rate", f"{report.success_rate:.2f}%"),
    ]

    parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        "    <meta charset=\"utf-8\">",
        "    <title>Test Results Report</title>",
        "    <style>",
        _HTML_STYLE.rstrip("\n"),
        "    </style>",
        "</head>",
        "<body>",
        "    <div class=\"container\">",
        "        <h1>Test Results Report</h1>",
        f"        <p class=\"timestamp\">Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}</p>",
        "        <div class=\"summary\">",
    ]
    for css, title, value in cards:
        parts.extend([
            f"            <div class=\"stat-card {css}\">",
            f"                <h3>{title}</h3>",
            f"                <div class=\"number\">{value}</div>",
            "            </div>",
        ])
    parts.extend([
        "        </div>",
        "        <div class=\"test-list\">",
        "            <h2>Test Results</h2>",
    ])
    for index, result in enumerate(report.results, 1):
        css = "test-passed" if result.ok else "test-failed"
        parts.append(
            f"            <div class=\"test-item {css}\">"
            f"{_icon(result)} {html.escape(_label(result, index))}</div>"
        )
    parts.extend([
        "        </div>",
        "    </div>",
        "</body>",
        "</html>",
    ])
    return "\n".join(parts) + "\n"


def render_junit(
    report: TapReport,
    generated_at: datetime,
    suite_name: str = DEFAULT_SUITE_NAME,
) -> str:
    """JUnit XML with one testcase per TAP result."""
    root = ET.Element("testsuites")
    suite = ET.SubElement(root, "testsuite", {
        "name": suite_name,
        "tests": str(report.total),
        "failures": str(report.failed),
        "skipped": str(report.skipped),
        "time": "0",
        "timestamp": generated_at.strftime("%Y-%m-%dT%H:%M:%S"),
    })

    for result in report.results:
        case = ET.SubElement(suite, "testcase", {
            "name": result.description,
            "classname": JUNIT_CLASSNAME,
            "time": "0",
        })
        if not result.ok:
            failure = ET.SubElement(case, "failure", {"message": "Test failed"})
            failure.text = "\n".join([result.raw] + result.diagnostics)
        elif result.skipped:
            ET.SubElement(case, "skipped", {"message": result.directive_reason or "skipped"})

    ET.indent(root, space="    ")
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


_RENDERERS = {
    "markdown": render_markdown,
    "html": render_html,
    "junit": render_junit,
}


def resolve_formats(fmt: str) -> list[str]:
    """Map a CLI format name to canonical formats.

    Raises:
        ValueError: for an unknown format
    """
    if fmt == "all":
        return ["markdown", "html", "junit"]
    if fmt not in FORMAT_ALIASES:
        raise ValueError(f"Unknown format: {fmt} (supported: markdown, html, junit, all)")
    return [FORMAT_ALIASES[fmt]]


def write_reports(
    tap_file: Path,
    report_dir: Path,
    fmt: str = "all",
    generated_at: datetime | None = None,
) -> list[Path]:
    """
    Render a TAP file into report_dir.

    Returns:
        Paths of the written reports

    Raises:
        FileNotFoundError: if tap_file is missing
        ValueError: for an unknown format
    """
    formats = resolve_formats(fmt)
    if not tap_file.is_file():
        raise FileNotFoundError(f"TAP file not found: {tap_file}")

    report = parse_tap_file(tap_file)
    generated_at = generated_at or datetime.now(timezone.utc)
    report_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for name in formats:
        out_path = report_dir / OUTPUT_FILES[name]
        out_path.write_text(_RENDERERS[name](report, generated_at))
        logger.info(f"{name} report saved to: {out_path}")
        written.append(out_path)
    return written


def publish_step_summary(written: list[Path]) -> bool:
    """Append the Markdown report, when one was written, to the job summary."""
    for path in written:
        if path.name == OUTPUT_FILES["markdown"]:
            return actions.write_step_summary(path.read_text())
    return False
