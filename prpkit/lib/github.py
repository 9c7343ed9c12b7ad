"""
GitHub operations for the PRP pipeline.

Pull request creation, issue comments and the bot-status check, all via
the gh CLI. Functions return result tuples/objects instead of raising on
gh failures so workflow steps can turn them into annotations.
"""

import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from prpkit.git.remote import push_set_upstream

logger = logging.getLogger(__name__)


# Timeout for GitHub CLI operations (seconds)
GH_TIMEOUT_SECONDS = 30

DEFAULT_BOT_USERNAME = "Claude AI Bot"


@dataclass
class IssueComment:
    """A comment on an issue, as returned by the REST API."""
    id: int
    author: str
    body: str
    created_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "IssueComment":
        return cls(
            id=int(data.get("id", 0)),
            author=(data.get("user") or {}).get("login", ""),
            body=data.get("body") or "",
            created_at=data.get("created_at", ""),
        )


@dataclass
class Issue:
    """Issue title and body."""
    number: int
    title: str
    body: str

    @classmethod
    def from_dict(cls, data: dict) -> "Issue":
        return cls(
            number=int(data.get("number", 0)),
            title=data.get("title") or "",
            body=data.get("body") or "",
        )


@dataclass
class BotStatus:
    """Outcome of the bot-status check for an issue."""
    should_process: bool
    discussion_context: str = ""
    comments: list[IssueComment] = field(default_factory=list)
    error: str | None = None


def _run_gh(args: list[str], repo_path: Path, input_text: str | None = None) -> tuple[bool, str]:
    """Run gh, returning (success, stdout_or_error)."""
    try:
        result = subprocess.run(
            ["gh"] + args,
            capture_output=True,
            text=True,
            cwd=str(repo_path),
            input=input_text,
            timeout=GH_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        return False, "GitHub CLI (gh) not found\n  Install: https://cli.github.com/"
    except subprocess.TimeoutExpired:
        return False, "GitHub operation timed out"
    except subprocess.SubprocessError as e:
        return False, f"GitHub operation failed: {e}"

    if result.returncode != 0:
        return False, result.stderr.strip()
    return True, result.stdout


def _pr_number_from_url(url: str) -> int | None:
    try:
        return int(url.rstrip("/").split("/")[-1])
    except (ValueError, IndexError):
        return None


def create_pull_request(
    repo_path: Path,
    title: str,
    body: str,
    head: str,
    base: str = "main",
    draft: bool = False,
    push: bool = False,
) -> tuple[bool, str, int | None]:
    """
    Create a pull request from head into base.

    Args:
        push: Push head to origin (with upstream tracking) first

    Returns: (success, url_or_error, pr_number)
    """
    if push:
        push_result = push_set_upstream(repo_path, "origin", head)
        if not push_result.success:
            return False, f"Failed to push branch: {push_result.error}", None

    args = ["pr", "create", "--base", base, "--head", head, "--title", title, "--body", body]
    if draft:
        args.append("--draft")

    ok, out = _run_gh(args, repo_path)
    if not ok:
        return False, f"Failed to create PR: {out}", None

    pr_url = out.strip().splitlines()[-1] if out.strip() else ""
    pr_number = _pr_number_from_url(pr_url) if pr_url else None
    logger.info(f"Created PR #{pr_number}: {pr_url}")
    return True, pr_url, pr_number


def comment_on_issue(repo_path: Path, issue_number: int, body: str) -> tuple[bool, str]:
    """
    Post a comment on an issue or PR.

    Returns: (success, comment_id_or_error)
    """
    ok, out = _run_gh(
        ["api", f"repos/{{owner}}/{{repo}}/issues/{issue_number}/comments",
         "--method", "POST", "--input", "-"],
        repo_path,
        input_text=json.dumps({"body": body}),
    )
    if not ok:
        return False, f"Failed to create comment: {out}"
    try:
        data = json.loads(out)
    except json.JSONDecodeError:
        return False, "Invalid JSON from gh"
    logger.info(f"Created comment: {data.get('html_url', '')}")
    return True, str(data.get("id", ""))


def get_issue(repo_path: Path, issue_number: int) -> tuple[bool, Issue | str]:
    """Fetch issue title/body. Returns (success, Issue or error)."""
    ok, out = _run_gh(["api", f"repos/{{owner}}/{{repo}}/issues/{issue_number}"], repo_path)
    if not ok:
        return False, out
    try:
        return True, Issue.from_dict(json.loads(out))
    except json.JSONDecodeError:
        return False, "Invalid JSON from gh"


def list_issue_comments(repo_path: Path, issue_number: int) -> tuple[bool, list[IssueComment] | str]:
    """Fetch all comments on an issue, oldest first."""
    ok, out = _run_gh(
        ["api", "--paginate", f"repos/{{owner}}/{{repo}}/issues/{issue_number}/comments",
         "--jq", ".[]"],
        repo_path,
    )
    if not ok:
        return False, out

    comments = []
    # --jq '.[]' emits one JSON object per line across all pages
    for line in out.splitlines():
        if not line.strip():
            continue
        try:
            comments.append(IssueComment.from_dict(json.loads(line)))
        except json.JSONDecodeError:
            return False, "Invalid JSON from gh"
    return True, comments


def should_process(comments: list[IssueComment], bot_username: str) -> bool:
    """Process unless the latest comment was written by the bot itself."""
    if not comments:
        return True
    return comments[-1].author != bot_username


def format_discussion_context(issue: Issue, comments: list[IssueComment]) -> str:
    """Render an issue and its discussion as Markdown for the agent."""
    context = f"# Issue: {issue.title}\n\n{issue.body}\n\n"
    if comments:
        context += "## Discussion:\n\n"
        for comment in comments:
            context += f"**{comment.author}** ({comment.created_at}):\n{comment.body}\n\n"
    return context


def check_bot_status(
    repo_path: Path,
    issue_number: int,
    bot_username: str = DEFAULT_BOT_USERNAME,
) -> BotStatus:
    """
    Decide whether the bot should act on an issue and gather its context.

    Returns BotStatus with error field set on failure.
    """
    ok, comments = list_issue_comments(repo_path, issue_number)
    if not ok:
        return BotStatus(should_process=False, error=f"Failed to check bot status: {comments}")

    process = should_process(comments, bot_username)
    logger.info(f"Should process issue #{issue_number}: {process}")
    if not process:
        return BotStatus(should_process=False, comments=comments)

    ok, issue = get_issue(repo_path, issue_number)
    if not ok:
        return BotStatus(should_process=False, comments=comments,
                         error=f"Failed to check bot status: {issue}")

    return BotStatus(
        should_process=True,
        discussion_context=format_discussion_context(issue, comments),
        comments=comments,
    )
