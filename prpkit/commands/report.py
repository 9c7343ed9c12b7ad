"""
prp report - Format a TAP file as Markdown, HTML and/or JUnit XML.
"""

from pathlib import Path

from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_ERROR, EXIT_SUCCESS, EXIT_USAGE
from prpkit.lib.reports import publish_step_summary, write_reports

DEFAULT_TAP_NAME = "test-results.tap"


def cmd_report(args, project_dir: Path, config: HarnessConfig) -> int:
    tap_file = Path(args.tap_file) if args.tap_file else config.report_dir / DEFAULT_TAP_NAME
    report_dir = Path(args.output_dir) if args.output_dir else config.report_dir

    try:
        written = write_reports(tap_file, report_dir, args.format)
    except ValueError as e:
        print(f"ERROR: {e}")
        return EXIT_USAGE
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        return EXIT_ERROR

    for path in written:
        print(f"Report saved to: {path}")
    publish_step_summary(written)
    return EXIT_SUCCESS
