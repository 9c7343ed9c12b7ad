"""
PRP file discovery and lifecycle moves.

A PRP is a Markdown file under PRPs/. Its lifecycle state is the
directory it lives in: PRPs/todo/ while pending, PRPs/done/ once an
implementation has been started from it.
"""

import logging
import re
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PRP_DIR = "PRPs"
TODO_DIR = "todo"
DONE_DIR = "done"
VALID_STATES = (TODO_DIR, DONE_DIR)

BRANCH_PREFIX = "implement/"

# Stops at whitespace and ')' so Markdown links like [x](PRPs/a.md) match cleanly
PRP_PATH_PATTERN = re.compile(r'PRPs/[^\s)]+\.md')


class PRPNotFoundError(Exception):
    """A comment referenced a PRP file that does not exist or lies outside PRPs/."""

    def __init__(self, path: str, reason: str = "does not exist"):
        self.path = path
        super().__init__(f"PRP file {reason}: {path}")


@dataclass
class PRPRef:
    """A PRP referenced from a comment."""
    path: str  # Repo-relative, as written in the comment
    name: str  # Basename without .md
    branch_name: str


def extract_prp_path(comment_body: str) -> str | None:
    """Return the first PRPs/...md path in the text, or None."""
    if not comment_body:
        return None
    match = PRP_PATH_PATTERN.search(comment_body)
    return match.group(0) if match else None


def prp_name_from_path(path: str) -> str:
    """PRPs/todo/add-auth.md -> add-auth"""
    name = Path(path).name
    return name[:-len(".md")] if name.endswith(".md") else name


def _is_within(path: Path, root: Path) -> bool:
    return path.resolve().is_relative_to(root.resolve())


def make_branch_name(prp_name: str, timestamp: float) -> str:
    """Implementation branch name: implement/<name>-<unix seconds>."""
    return f"{BRANCH_PREFIX}{prp_name}-{int(timestamp)}"


def resolve_prp(comment_body: str, repo: Path, now: float | None = None) -> PRPRef | None:
    """
    Find the PRP a comment refers to.

    Returns:
        PRPRef, or None when the comment names no PRP

    Raises:
        PRPNotFoundError: when the named file is missing from the repo, or
            resolves (via .. or a symlink) outside the PRPs directory
    """
    path = extract_prp_path(comment_body)
    if path is None:
        return None

    if not _is_within(repo / path, repo / DEFAULT_PRP_DIR):
        raise PRPNotFoundError(path, reason=f"is outside {DEFAULT_PRP_DIR}/")
    if not (repo / path).is_file():
        raise PRPNotFoundError(path)

    name = prp_name_from_path(path)
    timestamp = time.time() if now is None else now
    return PRPRef(path=path, name=name, branch_name=make_branch_name(name, timestamp))


def state_path(prp_name: str, state: str, prp_dir: str = DEFAULT_PRP_DIR) -> str:
    """Repo-relative path of a PRP in the given lifecycle directory."""
    if state not in VALID_STATES:
        raise ValueError(f"Unknown PRP state '{state}' (expected one of {', '.join(VALID_STATES)})")
    return f"{prp_dir}/{state}/{prp_name}.md"


def done_path(prp_name: str, prp_dir: str = DEFAULT_PRP_DIR) -> str:
    return state_path(prp_name, DONE_DIR, prp_dir)


def state_of(path: str, prp_dir: str = DEFAULT_PRP_DIR) -> str:
    """Lifecycle state implied by where a PRP file lives."""
    parts = Path(path).parts
    prefix = Path(prp_dir).parts
    if len(parts) > len(prefix) and parts[:len(prefix)] == prefix and parts[len(prefix)] == DONE_DIR:
        return DONE_DIR
    return TODO_DIR


def move_prp(repo: Path, source: str, dest: str) -> Path | None:
    """
    Move a PRP file within the repo, creating the destination directory.

    An existing destination is overwritten (last write wins).

    Returns:
        Absolute destination path, or None if the source vanished

    Raises:
        ValueError: if source or dest resolves outside the repo
    """
    src = repo / source
    dst = repo / dest
    for rel, full in ((source, src), (dest, dst)):
        if not _is_within(full, repo):
            raise ValueError(f"Refusing to move PRP outside the repository: {rel}")
    if not src.is_file():
        logger.warning(f"PRP file not found for moving: {source}")
        return None
    if src.resolve() == dst.resolve():
        return dst

    dst.parent.mkdir(parents=True, exist_ok=True)
    if dst.exists():
        logger.warning(f"Overwriting existing PRP at {dest}")
    shutil.move(str(src), str(dst))
    logger.info(f"Moved PRP {source} -> {dest}")
    return dst


def move_to_done(repo: Path, ref: PRPRef, prp_dir: str = DEFAULT_PRP_DIR) -> Path | None:
    """Move a referenced PRP to PRPs/done/<name>.md."""
    return move_prp(repo, ref.path, done_path(ref.name, prp_dir))


def list_prps(repo: Path, state: str, prp_dir: str = DEFAULT_PRP_DIR) -> list[Path]:
    """List PRP files in a lifecycle directory, sorted by name."""
    if state not in VALID_STATES:
        raise ValueError(f"Unknown PRP state '{state}' (expected one of {', '.join(VALID_STATES)})")
    directory = repo / prp_dir / state
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.glob("*.md") if p.is_file())
