"""
prp extract - Find the PRP named in a comment, branch, and prepare the prompt.
"""

import logging
from pathlib import Path

from prpkit.lib import actions
from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_ERROR, EXIT_SUCCESS, EXIT_USAGE
from prpkit.lib.prp import PRPNotFoundError, resolve_prp
from prpkit.lib.templates import build_implementation_prompt
from prpkit.workflow.lifecycle import LifecycleError, PRPLifecycle

logger = logging.getLogger(__name__)


def _fail(message: str) -> int:
    print(f"ERROR: {message}")
    actions.error(message)
    return EXIT_ERROR


def _comment_body(args) -> str | None:
    if args.comment_file:
        return Path(args.comment_file).read_text()
    return args.comment_body


def cmd_extract(args, project_dir: Path, config: HarnessConfig) -> int:
    """Resolve a PRP reference and run the implementation setup steps."""
    repo = Path(args.repo).resolve() if args.repo else project_dir

    body = _comment_body(args)
    if body is None:
        print("ERROR: --comment-body or --comment-file is required")
        return EXIT_USAGE

    try:
        ref = resolve_prp(body, repo)
    except PRPNotFoundError as e:
        actions.set_output("has_prp", "false")
        return _fail(str(e))

    if ref is None:
        actions.set_output("has_prp", "false")
        actions.notice("No PRP file path found in comment")
        return EXIT_SUCCESS

    actions.set_outputs({
        "prp_path": ref.path,
        "prp_name": ref.name,
        "branch_name": ref.branch_name,
        "has_prp": "true",
    })
    actions.notice(f"Found PRP: {ref.path}")
    actions.notice(f"Branch name: {ref.branch_name}")
    if args.issue_number:
        logger.info(f"Processing PRP for issue #{args.issue_number}")

    lifecycle = PRPLifecycle.from_ref(
        repo,
        ref,
        prp_dir=config.prp_dir,
        create_branch=args.create_branch,
        move_files=args.move_to_done,
    )

    try:
        if lifecycle.can("start_implementation"):
            lifecycle.start_implementation()
        elif args.create_branch:
            # Already in done/: branch anyway, the file stays put
            lifecycle.create_implementation_branch()
        if args.create_branch:
            actions.notice(f"Created branch: {ref.branch_name}")
        if args.move_to_done and lifecycle.can("complete"):
            lifecycle.complete()
            if lifecycle.path != ref.path:
                actions.notice(f"Moved PRP to done: {lifecycle.path}")
            else:
                actions.warning(f"PRP file not found for moving: {ref.path}")
    except LifecycleError as e:
        return _fail(str(e))

    prompt, used_template = build_implementation_prompt(repo, ref.path)
    prompt_file = Path(args.prompt_file)
    prompt_file.parent.mkdir(parents=True, exist_ok=True)
    prompt_file.write_text(prompt)
    if used_template:
        actions.notice(f"Created implementation prompt for: {ref.path}")
    else:
        actions.warning("PRP base execute template not found, creating basic prompt")

    return EXIT_SUCCESS
