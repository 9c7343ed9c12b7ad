"""Git branch operations."""

from pathlib import Path

from prpkit.git.runner import run_git, GitResult


def get_current_branch(repo: Path) -> str | None:
    """Get the current branch name, or None if detached HEAD."""
    result = run_git(["branch", "--show-current"], repo)
    if result.success:
        return result.stdout.strip() or None
    return None


def create_branch(repo: Path, branch: str) -> GitResult:
    """Create a branch from HEAD and switch to it (git checkout -b)."""
    return run_git(["checkout", "-b", branch], repo)
