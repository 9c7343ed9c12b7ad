"""Git operations used by the PRP automation.

Return type conventions:
- Functions returning GitResult: Caller must check .success before using output.
  Examples: create_branch(), push_set_upstream(), set_config()
- Functions returning parsed values: Return None on failure.
  Examples: get_current_branch(), get_git_user()
"""

from prpkit.git.runner import run_git, GitResult
from prpkit.git.branch import (
    get_current_branch,
    create_branch,
)
from prpkit.git.remote import push_set_upstream
from prpkit.git.config import (
    set_config,
    get_config,
    configure_git_user,
    get_git_user,
)

__all__ = [
    "run_git",
    "GitResult",
    # branch
    "get_current_branch",
    "create_branch",
    # remote
    "push_set_upstream",
    # config
    "set_config",
    "get_config",
    "configure_git_user",
    "get_git_user",
]
