"""Git remote operations."""

from pathlib import Path

from prpkit.git.runner import PUSH_TIMEOUT, run_git, GitResult


def push_set_upstream(repo: Path, remote: str, branch: str) -> GitResult:
    """Push and set upstream tracking."""
    return run_git(["push", "-u", remote, branch], repo, timeout=PUSH_TIMEOUT)
