"""
GitHub Actions runner protocol helpers.

Step outputs go to the file named by GITHUB_OUTPUT. Annotations are
workflow commands printed to stdout inside a job, and ordinary log
records everywhere else.
"""

import logging
import os
import secrets
import sys
from typing import Mapping

logger = logging.getLogger(__name__)


def in_github_actions() -> bool:
    """True when running inside a GitHub Actions job."""
    return os.environ.get("GITHUB_ACTIONS") == "true"


def format_bool(value: bool) -> str:
    """Render a boolean the way workflow expressions compare it."""
    return "true" if value else "false"


def _delimiter(value: str) -> str:
    while True:
        delim = f"ghadelimiter_{secrets.token_hex(8)}"
        if delim not in value:
            return delim


def set_output(key: str, value: str) -> None:
    """Append a key=value pair to GITHUB_OUTPUT.

    Multiline values use the heredoc form with a random delimiter.
    """
    value = str(value)
    output_file = os.environ.get("GITHUB_OUTPUT")
    if not output_file:
        logger.info(f"GITHUB_OUTPUT not set, would output: {key}={value[:100]}")
        return

    with open(output_file, "a") as f:
        if "\n" in value:
            delim = _delimiter(value)
            f.write(f"{key}<<{delim}\n{value}\n{delim}\n")
        else:
            f.write(f"{key}={value}\n")


def set_outputs(outputs: Mapping[str, str]) -> None:
    """Write several outputs in order."""
    for key, value in outputs.items():
        set_output(key, value)


def _escape(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


_LOG_LEVELS = {
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _annotate(level: str, message: str) -> None:
    # Workflow commands mean nothing outside a runner; log them instead
    if not in_github_actions():
        logger.log(_LOG_LEVELS[level], message)
        return
    print(f"::{level}::{_escape(message)}", file=sys.stdout, flush=True)


def notice(message: str) -> None:
    _annotate("notice", message)


def warning(message: str) -> None:
    _annotate("warning", message)


def error(message: str) -> None:
    _annotate("error", message)


def write_step_summary(content: str) -> bool:
    """Append Markdown to GITHUB_STEP_SUMMARY.

    Returns:
        True if written successfully, False otherwise
    """
    summary_path = os.environ.get("GITHUB_STEP_SUMMARY")
    if not summary_path:
        logger.info("GITHUB_STEP_SUMMARY not set, skipping job summary")
        return False
    try:
        with open(summary_path, "a") as f:
            f.write(content)
        return True
    except OSError as e:
        logger.warning(f"Failed to write job summary: {e}")
        return False
