"""
Token sanity checks run before any Claude or GitHub call.

These are format checks only; nothing here talks to an API.
"""

import re

CLAUDE_TOKEN_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
CLAUDE_TOKEN_MIN_LENGTH = 10

GITHUB_TOKEN_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "ghr_", "github_pat_")


def validate_claude_token(token: str | None) -> None:
    """
    Check a Claude OAuth token looks plausible.

    Raises:
        ValueError: if missing, malformed or too short
    """
    if not token:
        raise ValueError("Claude OAuth token is required")
    if not CLAUDE_TOKEN_PATTERN.match(token):
        raise ValueError("Invalid Claude OAuth token format")
    if len(token) < CLAUDE_TOKEN_MIN_LENGTH:
        raise ValueError("Claude OAuth token appears to be too short")


def validate_github_token(token: str | None) -> list[str]:
    """
    Check a GitHub token is present.

    Returns:
        Warnings (an unrecognized prefix is suspicious but not fatal)

    Raises:
        ValueError: if missing
    """
    if not token:
        raise ValueError("GitHub token is required")
    if not token.startswith(GITHUB_TOKEN_PREFIXES):
        return ["GitHub token format may be invalid"]
    return []
