"""Git identity configuration for bot commits."""

import logging
from pathlib import Path

from prpkit.git.runner import run_git, GitResult

logger = logging.getLogger(__name__)

DEFAULT_GIT_USER_NAME = "Claude AI Bot"
DEFAULT_GIT_USER_EMAIL = "claude-ai@users.noreply.github.com"


def set_config(repo: Path, key: str, value: str, scope: str = "--global") -> GitResult:
    """Set a git config value (scope: --global, --local or --system)."""
    return run_git(["config", scope, key, value], repo)


def get_config(repo: Path, key: str, scope: str = "--global") -> str | None:
    """Read a git config value, or None if unset."""
    result = run_git(["config", scope, key], repo)
    if result.success:
        return result.stdout.strip() or None
    return None


def configure_git_user(
    repo: Path,
    name: str | None = None,
    email: str | None = None,
    scope: str = "--global",
) -> tuple[bool, str]:
    """
    Configure the commit identity.

    Empty name/email fall back to the bot defaults.

    Returns:
        (success, error_message)
    """
    name = name or DEFAULT_GIT_USER_NAME
    email = email or DEFAULT_GIT_USER_EMAIL
    logger.info(f"Configuring git user: {name} <{email}>")

    result = set_config(repo, "user.name", name, scope)
    if not result.success:
        return False, f"Failed to configure git user name: {result.error}"

    result = set_config(repo, "user.email", email, scope)
    if not result.success:
        return False, f"Failed to configure git user email: {result.error}"

    return True, ""


def get_git_user(repo: Path, scope: str = "--global") -> tuple[str, str] | None:
    """Return (name, email) when both are configured, else None."""
    name = get_config(repo, "user.name", scope)
    email = get_config(repo, "user.email", scope)
    if name and email:
        return name, email
    return None
