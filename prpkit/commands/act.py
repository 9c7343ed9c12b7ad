"""
prp act - Run act with the host platform detected.
"""

import os
from pathlib import Path

from prpkit.lib.act import run_act
from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_ERROR


def cmd_act(args, project_dir: Path, config: HarnessConfig) -> int:
    act_args = list(args.act_args)
    if act_args and act_args[0] == "--":
        act_args = act_args[1:]
    try:
        return run_act(act_args, os.environ)
    except FileNotFoundError:
        print("ERROR: act is not installed (https://github.com/nektos/act)")
        return EXIT_ERROR
