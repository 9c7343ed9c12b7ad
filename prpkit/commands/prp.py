"""
prp prp list - List PRPs by lifecycle state.
"""

from pathlib import Path

from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_SUCCESS
from prpkit.lib.prp import VALID_STATES, list_prps


def cmd_prp_list(args, project_dir: Path, config: HarnessConfig) -> int:
    states = [args.state] if args.state else list(VALID_STATES)
    total = 0
    for state in states:
        files = list_prps(project_dir, state, config.prp_dir)
        total += len(files)
        print(f"{state} ({len(files)})")
        print("-" * 60)
        for path in files:
            print(f"  {path.stem:<40} {path.relative_to(project_dir)}")
        print()
    print(f"{total} PRP(s)")
    return EXIT_SUCCESS
