"""
Prompt templates for the PRP pipeline.

Templates are Markdown files in the consuming repository containing a
$ARGUMENTS placeholder, e.g. .claude/commands/PRPs/prp-base-execute.md.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ARGUMENTS_PLACEHOLDER = "$ARGUMENTS"

TEMPLATES_DIR = Path(".claude") / "commands" / "PRPs"
EXECUTE_TEMPLATE = TEMPLATES_DIR / "prp-base-execute.md"
CREATE_TEMPLATE = TEMPLATES_DIR / "prp-base-create.md"


def substitute_arguments(template: str, value: str) -> str:
    """Replace every $ARGUMENTS placeholder with value, literally."""
    return template.replace(ARGUMENTS_PLACEHOLDER, value)


def _render(repo: Path, template_path: Path, value: str) -> str | None:
    path = repo / template_path
    if not path.is_file():
        return None
    return substitute_arguments(path.read_text(), value)


def build_implementation_prompt(repo: Path, prp_path: str) -> tuple[str, bool]:
    """
    Prompt asking the agent to implement a PRP.

    Returns:
        (prompt, used_template)
    """
    prompt = _render(repo, EXECUTE_TEMPLATE, prp_path)
    if prompt is not None:
        return prompt, True
    logger.warning(f"{EXECUTE_TEMPLATE} not found, creating basic prompt")
    return f"Please implement the PRP located at: {prp_path}\n", False


def build_creation_prompt(repo: Path, discussion_context: str) -> tuple[str, bool]:
    """
    Prompt asking the agent to write a PRP from an issue discussion.

    Returns:
        (prompt, used_template)
    """
    prompt = _render(repo, CREATE_TEMPLATE, discussion_context)
    if prompt is not None:
        return prompt, True
    logger.warning(f"{CREATE_TEMPLATE} not found, using discussion context directly")
    return discussion_context, False
