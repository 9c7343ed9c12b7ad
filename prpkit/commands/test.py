"""
prp test run - Run BATS tests through the result cache.
"""

import time
from pathlib import Path

from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_SUCCESS
from prpkit.lib.errors import HarnessError, report_error
from prpkit.lib.reports import publish_step_summary
from prpkit.runner.cache import TestCache
from prpkit.runner.cached import CachedTestRunner, overall_exit_code, summarize

DEFAULT_TARGET = "tests"


def cmd_test_run(args, project_dir: Path, config: HarnessConfig) -> int:
    """Run a test file or directory, reusing cached results where valid."""
    target = Path(args.target or DEFAULT_TARGET)
    if not target.is_absolute():
        target = project_dir / target

    runner = CachedTestRunner(
        TestCache(config.cache_dir, config.cache_ttl_seconds),
        config.report_dir,
        max_jobs=args.jobs or config.max_parallel_jobs,
        timeout=args.timeout,
        report_format=args.format,
    )

    started = time.monotonic()
    try:
        outcomes = runner.run_target(target)
    except HarnessError as e:
        return report_error(e, config.log_file)

    for outcome in outcomes:
        mark = "PASS" if outcome.success else "FAIL"
        source = " (cached)" if outcome.cached else ""
        print(f"  [{mark}] {outcome.test_file}{source}")
    print(summarize(outcomes, started))
    print(f"Reports written to: {config.report_dir}")
    publish_step_summary(runner.reports)

    if not outcomes:
        print("No test files found")
        return EXIT_SUCCESS
    return overall_exit_code(outcomes)
