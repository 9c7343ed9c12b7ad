"""
prp setup - Validate tokens and configure the git identity for Claude workflows.
"""

import os
from datetime import datetime, timezone
from pathlib import Path

from prpkit.git.config import configure_git_user
from prpkit.lib import actions
from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_ERROR, EXIT_SUCCESS
from prpkit.lib.credentials import validate_claude_token, validate_github_token

CLAUDE_TOKEN_ENV = "CLAUDE_CODE_OAUTH_TOKEN"
GITHUB_TOKEN_ENV = "GITHUB_TOKEN"


def cmd_setup(args, project_dir: Path, config: HarnessConfig) -> int:
    """Validate credentials, configure git, and publish setup outputs."""
    repo = Path(args.repo).resolve() if args.repo else project_dir
    claude_token = args.claude_token or os.environ.get(CLAUDE_TOKEN_ENV)
    github_token = args.github_token or os.environ.get(GITHUB_TOKEN_ENV)

    try:
        validate_claude_token(claude_token)
        warnings = validate_github_token(github_token)
    except ValueError as e:
        print(f"ERROR: {e}")
        actions.error(str(e))
        return EXIT_ERROR

    for message in warnings:
        actions.warning(message)
    print("Tokens validated successfully")

    name = args.git_user_name or config.git_user_name
    email = args.git_user_email or config.git_user_email

    if args.configure_git:
        ok, err = configure_git_user(repo, name, email, scope=args.git_scope)
        if not ok:
            print(f"ERROR: {err}")
            actions.error(err)
            return EXIT_ERROR
        print(f"Git configured: {name} <{email}>")
    else:
        print("Skipping git configuration")

    actions.set_outputs({
        "repository_path": str(repo),
        "git_user_name": name,
        "git_user_email": email,
        "setup_timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    })
    return EXIT_SUCCESS
