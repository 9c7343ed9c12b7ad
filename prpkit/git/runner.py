"""
Git subprocess runner for workflow steps.

Runs unattended inside CI jobs: credential and editor prompts are
disabled so a misconfigured remote fails fast instead of hanging the job.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
PUSH_TIMEOUT = 60
GIT_NOT_FOUND = 127

# Applied on top of the caller's environment
NON_INTERACTIVE_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_EDITOR": "true",
}


@dataclass
class GitResult:
    """Outcome of one git invocation. Never raised; check .success."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def error(self) -> str:
        """stderr, falling back to stdout, for error messages."""
        return (self.stderr or self.stdout).strip()


def run_git(args: list[str], cwd: Path, timeout: int = DEFAULT_TIMEOUT) -> GitResult:
    """
    Run `git -C <cwd> <args>` without prompting.

    A missing git binary is reported as returncode 127 and a timeout as
    returncode -1 with timed_out set.
    """
    cmd = ["git", "-C", str(cwd), *args]
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env={**os.environ, **NON_INTERACTIVE_ENV},
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"git {args[0] if args else ''} timed out after {timeout}s")
        return GitResult(-1, "", f"Command timed out after {timeout}s", timed_out=True)
    except FileNotFoundError:
        return GitResult(GIT_NOT_FOUND, "", "git executable not found")

    if result.returncode != 0:
        logger.debug(f"git exited {result.returncode}: {result.stderr.strip()}")
    return GitResult(result.returncode, result.stdout, result.stderr)
