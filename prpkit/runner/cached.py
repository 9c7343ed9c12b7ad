"""
Cached BATS test runner.

Runs test files through the result cache: an unchanged file within the
TTL is answered from the cache, anything else runs under bats and is
saved. Directories run in parallel, bounded by max_jobs.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from prpkit.lib.errors import ErrorType, HarnessError
from prpkit.lib.reports import write_reports
from prpkit.runner.bats import run_bats
from prpkit.runner.cache import TestCache

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = "*.bats"
COMBINED_TAP_NAME = "cached-results.tap"


@dataclass
class TestOutcome:
    """Result of one test file, fresh or from cache."""
    __test__ = False

    test_file: Path
    exit_code: int
    output: str
    cached: bool
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class CachedTestRunner:
    """Runs BATS files through a TestCache."""

    __test__ = False

    def __init__(
        self,
        cache: TestCache,
        report_dir: Path,
        max_jobs: int = 4,
        timeout: float | None = None,
        report_format: str = "all",
    ):
        self.cache = cache
        self.report_dir = Path(report_dir)
        self.max_jobs = max(1, max_jobs)
        self.timeout = timeout
        self.report_format = report_format
        self.reports: list[Path] = []

    def run_one(self, test_file: Path) -> TestOutcome:
        test_file = Path(test_file)
        if self.cache.is_cached(test_file):
            # No usable sidecar means no trustworthy exit code: run again
            meta = self.cache.metadata(test_file)
            if meta is not None:
                logger.info(f"Using cached results for: {test_file}")
                return TestOutcome(
                    test_file=test_file,
                    exit_code=meta["exit_code"],
                    output=self.cache.get(test_file) or "",
                    cached=True,
                    duration=meta["duration"],
                )

        logger.info(f"Running test: {test_file}")
        result = run_bats(test_file, timeout=self.timeout)
        self.cache.save(test_file, result.output, result.exit_code, result.duration)
        return TestOutcome(
            test_file=test_file,
            exit_code=result.exit_code,
            output=result.output,
            cached=False,
            duration=result.duration,
        )

    def run_many(self, test_files: list[Path]) -> list[TestOutcome]:
        """Run files concurrently; outcomes come back in input order."""
        if not test_files:
            return []
        self.cache.init()
        workers = min(self.max_jobs, len(test_files))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bats") as pool:
            return list(pool.map(self.run_one, test_files))

    @staticmethod
    def discover(test_dir: Path, pattern: str = DEFAULT_PATTERN) -> list[Path]:
        return sorted(p for p in Path(test_dir).rglob(pattern) if p.is_file())

    def run_target(self, target: Path) -> list[TestOutcome]:
        """
        Run a single file or every test under a directory, then write reports.

        Raises:
            HarnessError: INVALID_CONFIG when target is neither a file nor a directory
        """
        target = Path(target)
        if target.is_file():
            outcomes = [self.run_one(target)]
        elif target.is_dir():
            files = self.discover(target)
            logger.info(f"Found {len(files)} test files, running with {self.max_jobs} parallel jobs")
            outcomes = self.run_many(files)
        else:
            raise HarnessError(
                ErrorType.INVALID_CONFIG,
                f"Invalid test target: {target}",
                context="Target must be a .bats file or a directory of tests",
            )

        self.write_combined(outcomes)
        return outcomes

    def write_combined(self, outcomes: list[TestOutcome]) -> Path:
        """Concatenate TAP output and render reports from it."""
        self.report_dir.mkdir(parents=True, exist_ok=True)
        tap_path = self.report_dir / COMBINED_TAP_NAME
        tap_path.write_text("".join(
            o.output if o.output.endswith("\n") or not o.output else o.output + "\n"
            for o in outcomes
        ))
        self.reports = write_reports(tap_path, self.report_dir, self.report_format)
        return tap_path


def overall_exit_code(outcomes: list[TestOutcome]) -> int:
    """0 when every outcome passed, else 1."""
    return 0 if all(o.success for o in outcomes) else 1


def summarize(outcomes: list[TestOutcome], started: float | None = None) -> str:
    cached = sum(1 for o in outcomes if o.cached)
    failed = sum(1 for o in outcomes if not o.success)
    line = f"{len(outcomes)} test files, {cached} from cache, {failed} failed"
    if started is not None:
        line += f" ({time.monotonic() - started:.1f}s)"
    return line
