"""
Parse TAP (Test Anything Protocol) output from BATS.

Supports:
- Plan lines (1..N)
- ok / not ok result lines, with or without a test number
- SKIP / TODO directives
- '#' comment lines, attached to the preceding result as diagnostics

Concatenated TAP streams (several files' output appended together) are
accepted: each plan line is recorded and numbering simply restarts.
"""

import re
from dataclasses import dataclass, field

RESULT_PATTERN = re.compile(r'^(not ok|ok)\b\s*(\d+)?\s*(?:-\s*)?(.*)$')
PLAN_PATTERN = re.compile(r'^(\d+)\.\.(\d+)')
DIRECTIVE_PATTERN = re.compile(r'\s+#\s*(SKIP|TODO)\b\s*(.*)$', re.IGNORECASE)


@dataclass
class TapResult:
    """A single test line."""
    number: int | None
    description: str
    ok: bool
    directive: str | None = None  # "SKIP" or "TODO"
    directive_reason: str = ""
    diagnostics: list[str] = field(default_factory=list)
    raw: str = ""

    @property
    def skipped(self) -> bool:
        return self.directive == "SKIP"


@dataclass
class TapReport:
    """Structured TAP stream."""
    results: list[TapResult] = field(default_factory=list)
    plans: list[tuple[int, int]] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)  # Comments before any result

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def success_rate(self) -> float:
        """Passed percentage, 0.0 for an empty stream."""
        if not self.results:
            return 0.0
        return self.passed / self.total * 100

    @property
    def failures(self) -> list[TapResult]:
        return [r for r in self.results if not r.ok]

    def is_empty(self) -> bool:
        return len(self.results) == 0


def _parse_result(line: str) -> TapResult | None:
    match = RESULT_PATTERN.match(line)
    if not match:
        return None

    status, number, description = match.groups()
    directive = None
    reason = ""
    directive_match = DIRECTIVE_PATTERN.search(description)
    if directive_match:
        directive = directive_match.group(1).upper()
        reason = directive_match.group(2).strip()
        description = description[:directive_match.start()]

    return TapResult(
        number=int(number) if number else None,
        description=description.strip(),
        ok=status == "ok",
        directive=directive,
        directive_reason=reason,
        raw=line,
    )


def parse_tap(text: str) -> TapReport:
    """Parse TAP text into a TapReport."""
    report = TapReport()

    for raw_line in text.splitlines():
        line = raw_line.rstrip()
        stripped = line.lstrip()

        plan = PLAN_PATTERN.match(stripped)
        if plan:
            report.plans.append((int(plan.group(1)), int(plan.group(2))))
            continue

        if stripped.startswith("#"):
            comment = stripped[1:].strip()
            if report.results:
                report.results[-1].diagnostics.append(comment)
            else:
                report.comments.append(comment)
            continue

        result = _parse_result(stripped)
        if result is not None:
            report.results.append(result)

    return report


def parse_tap_file(path) -> TapReport:
    """Read and parse a TAP file."""
    with open(path) as f:
        return parse_tap(f.read())
