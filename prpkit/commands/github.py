"""
prp github - Pull requests, issue comments and the bot-status check.
"""

import logging
from pathlib import Path

from prpkit.git.branch import get_current_branch
from prpkit.lib import actions
from prpkit.lib import github
from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_ERROR, EXIT_SUCCESS
from prpkit.lib.templates import build_creation_prompt

logger = logging.getLogger(__name__)


def _repo(args, project_dir: Path) -> Path:
    return Path(args.repo).resolve() if args.repo else project_dir


def _fail(message: str) -> int:
    print(f"ERROR: {message}")
    actions.error(message)
    return EXIT_ERROR


def cmd_create_pr(args, project_dir: Path, config: HarnessConfig) -> int:
    """Create a pull request and output its number and URL."""
    repo = _repo(args, project_dir)
    head = args.head or get_current_branch(repo)
    if not head:
        return _fail("Could not determine head branch (detached HEAD?); pass --head")

    ok, url, number = github.create_pull_request(
        repo,
        title=args.title,
        body=args.body or "",
        head=head,
        base=args.base,
        draft=args.draft,
        push=args.push,
    )
    if not ok:
        return _fail(url)

    actions.set_outputs({
        "pr_number": str(number) if number is not None else "",
        "pr_url": url,
    })
    print(f"Created PR #{number}: {url}")
    return EXIT_SUCCESS


def cmd_comment_issue(args, project_dir: Path, config: HarnessConfig) -> int:
    """Comment on an issue or PR and output the comment id."""
    body = Path(args.body_file).read_text() if args.body_file else args.body
    if not body:
        return _fail("Comment body is required (--body or --body-file)")

    ok, comment_id = github.comment_on_issue(_repo(args, project_dir), args.issue_number, body)
    if not ok:
        return _fail(comment_id)

    actions.set_output("comment_id", comment_id)
    print(f"Created comment {comment_id} on #{args.issue_number}")
    return EXIT_SUCCESS


def cmd_check_bot_status(args, project_dir: Path, config: HarnessConfig) -> int:
    """Decide whether the bot should respond; write context and prompt when it should."""
    repo = _repo(args, project_dir)
    bot_username = args.bot_username or config.bot_username

    status = github.check_bot_status(repo, args.issue_number, bot_username)
    if status.error:
        actions.set_output("should_process", "false")
        return _fail(status.error)

    actions.set_output("should_process", actions.format_bool(status.should_process))
    if not status.should_process:
        print(f"Last comment on #{args.issue_number} is from {bot_username}, skipping")
        return EXIT_SUCCESS

    context_file = Path(args.context_file)
    context_file.parent.mkdir(parents=True, exist_ok=True)
    context_file.write_text(status.discussion_context)
    logger.info(f"Wrote discussion context to {context_file}")

    prompt, used_template = build_creation_prompt(repo, status.discussion_context)
    prompt_file = Path(args.prompt_file)
    prompt_file.parent.mkdir(parents=True, exist_ok=True)
    prompt_file.write_text(prompt)
    if used_template:
        actions.notice("Created dynamic prompt with discussion context")
    else:
        actions.warning("PRP base create template not found, using discussion context directly")

    print(f"Should process #{args.issue_number}: true")
    return EXIT_SUCCESS
