"""
Workflow and action YAML helpers: validation, value lookup, pinning
action references to commit SHAs, and migrating workflows onto other
runners or onto the reusable PRP workflows.
"""

import fnmatch
import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import yaml

logger = logging.getLogger(__name__)

GH_TIMEOUT_SECONDS = 30

USES_PATTERN = re.compile(
    r'^(?P<prefix>\s*-?\s*uses:\s*)(?P<quote>["\']?)(?P<action>[^@\s"\']+)@(?P<ref>[^\s"\'#]+)(?P=quote)(?P<rest>.*)$'
)
SHA_PATTERN = re.compile(r'^[0-9a-f]{40}$')

_MISSING = object()


@dataclass
class ActionRef:
    """A `uses: owner/repo[/path]@ref` line."""
    action: str
    ref: str
    line: int  # 1-based

    @property
    def repo(self) -> str:
        """owner/repo, without any sub-path."""
        return "/".join(self.action.split("/")[:2])

    @property
    def pinned(self) -> bool:
        return bool(SHA_PATTERN.match(self.ref))


def validate_yaml(path: Path) -> Any:
    """
    Parse a YAML file.

    Returns:
        The parsed document

    Raises:
        ValueError: with the parser's message when the file is not valid YAML
        FileNotFoundError: if path does not exist
    """
    with open(path) as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from None


def _lookup(data: Any, dotted_path: str) -> Any:
    node = data
    for part in dotted_path.strip(".").split("."):
        if part == "":
            continue
        if isinstance(node, dict):
            # YAML 1.1 parses a bare `on:` key as True
            if part in node:
                node = node[part]
            elif part == "on" and True in node:
                node = node[True]
            else:
                return _MISSING
        elif isinstance(node, list):
            try:
                node = node[int(part)]
            except (ValueError, IndexError):
                return _MISSING
        else:
            return _MISSING
    return node


def get_yaml_value(data: Any, dotted_path: str, default: Any = None) -> Any:
    """Look up "jobs.build.steps.0.uses" style paths; list indices are integers."""
    value = _lookup(data, dotted_path)
    return default if value is _MISSING else value


def yaml_path_exists(data: Any, dotted_path: str) -> bool:
    """True when the path resolves to a non-null value."""
    value = _lookup(data, dotted_path)
    return value is not _MISSING and value is not None


def find_action_refs(text: str) -> list[ActionRef]:
    """Remote action references, skipping local (./) and docker:// uses."""
    refs = []
    for lineno, line in enumerate(text.splitlines(), 1):
        match = USES_PATTERN.match(line)
        if not match:
            continue
        action = match.group("action")
        if action.startswith("./") or action.startswith("docker://"):
            continue
        refs.append(ActionRef(action=action, ref=match.group("ref"), line=lineno))
    return refs


def find_workflow_files(root: Path) -> list[Path]:
    """Workflow files and composite action definitions under root."""
    root = Path(root)
    found = set()
    workflows = root / ".github" / "workflows"
    if workflows.is_dir():
        found.update(workflows.glob("*.yml"))
        found.update(workflows.glob("*.yaml"))
    found.update(root.rglob("action.yml"))
    found.update(root.rglob("action.yaml"))
    return sorted(found)


def gh_resolve_sha(action: str, ref: str) -> str | None:
    """Commit SHA for owner/repo@ref via the GitHub API."""
    repo = "/".join(action.split("/")[:2])
    try:
        result = subprocess.run(
            ["gh", "api", f"repos/{repo}/commits/{ref}", "--jq", ".sha"],
            capture_output=True,
            text=True,
            timeout=GH_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        logger.error("gh CLI not found")
        return None
    except subprocess.TimeoutExpired:
        logger.warning(f"Timed out resolving {action}@{ref}")
        return None

    sha = result.stdout.strip()
    if result.returncode != 0 or not SHA_PATTERN.match(sha):
        logger.warning(f"Failed to get SHA for {action}@{ref}: {result.stderr.strip()}")
        return None
    return sha


def pin_actions(
    path: Path,
    resolve_sha: Callable[[str, str], str | None] | None = None,
    dry_run: bool = False,
) -> int:
    """
    Rewrite unpinned action refs in a file to `action@<sha> # <ref>`.

    The original file is copied to <file>.bak before it is rewritten.
    Refs that can't be resolved are left alone.

    Returns:
        Number of references updated (or that would be, with dry_run)
    """
    resolve_sha = resolve_sha or gh_resolve_sha
    path = Path(path)
    lines = path.read_text().splitlines(keepends=True)
    resolved: dict[tuple[str, str], str | None] = {}
    updates = 0

    for i, line in enumerate(lines):
        body = line.rstrip("\r\n")
        ending = line[len(body):]
        match = USES_PATTERN.match(body)
        if not match:
            continue
        action, ref = match.group("action"), match.group("ref")
        if action.startswith("./") or action.startswith("docker://") or SHA_PATTERN.match(ref):
            continue

        key = (action, ref)
        if key not in resolved:
            resolved[key] = resolve_sha(action, ref)
        sha = resolved[key]
        if sha is None:
            continue

        quote = match.group("quote")
        lines[i] = f"{match.group('prefix')}{quote}{action}@{sha}{quote} # {ref}{ending}"
        logger.info(f"{path}:{i + 1}: {action}@{ref} -> {sha}")
        updates += 1

    if updates and not dry_run:
        shutil.copy2(path, path.with_name(path.name + ".bak"))
        path.write_text("".join(lines))

    return updates


# --------------------------------------------------------
# Runner migration
# --------------------------------------------------------

DEFAULT_RUNNER_MAP = {
    "ubuntu-latest": "buildjet-2vcpu-ubuntu-2204",
    "ubuntu-22.04": "buildjet-2vcpu-ubuntu-2204",
    "ubuntu-20.04": "buildjet-2vcpu-ubuntu-2204",
    "ubuntu-18.04": "buildjet-2vcpu-ubuntu-2204",
}

RUNS_ON_PATTERN = re.compile(r'^(?P<indent>\s*)runs-on:\s*(?P<value>.*?)\s*$')

TEMPLATES_DIR = Path(__file__).parent.parent / "workflow_templates"
FALLBACK_TEMPLATE_PATH = Path(".github") / "workflow-templates" / "buildjet-fallback.yml"


def migrate_runners(path: Path, runner_map: dict[str, str] | None = None, dry_run: bool = False) -> int:
    """
    Point `runs-on:` lines at replacement runners.

    A mapped line becomes `runs-on: <new> # BuildJet runner (fallback: <old>)`.
    Values that are expressions, lists or already commented don't match the
    map and are left alone, so a second run changes nothing. The original is
    kept as <file>.backup only when something changed.

    Returns:
        Number of runs-on lines rewritten (or that would be, with dry_run)
    """
    runner_map = DEFAULT_RUNNER_MAP if runner_map is None else runner_map
    path = Path(path)
    lines = path.read_text().splitlines(keepends=True)
    updates = 0

    for i, line in enumerate(lines):
        body = line.rstrip("\r\n")
        match = RUNS_ON_PATTERN.match(body)
        if not match:
            continue
        current = match.group("value").strip("\"'")
        new = runner_map.get(current)
        if new is None:
            continue
        lines[i] = f"{match.group('indent')}runs-on: {new} # BuildJet runner (fallback: {current}){line[len(body):]}"
        logger.info(f"{path}:{i + 1}: {current} -> {new}")
        updates += 1

    if updates and not dry_run:
        shutil.copy2(path, path.with_name(path.name + ".backup"))
        path.write_text("".join(lines))
    return updates


def write_fallback_template(repo: Path) -> Path | None:
    """Add the primary/fallback runner workflow template unless one exists."""
    dest = Path(repo) / FALLBACK_TEMPLATE_PATH
    if dest.exists():
        return None
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(TEMPLATES_DIR / "buildjet-fallback.yml", dest)
    logger.info(f"Created fallback template: {dest}")
    return dest


# --------------------------------------------------------
# Wrapper migration
# --------------------------------------------------------

DEFAULT_LIBRARY = "batumi-works/actions-lib"
DEFAULT_LIBRARY_VERSION = "v1"

MIGRATED = "migrated"
CURRENT = "current"
UNKNOWN = "unknown"

# First match wins; None means the workflow is already a thin wrapper
WRAPPER_RULES: list[tuple[tuple[str, ...], str | None]] = [
    (("*claude-prp-implementation*", "*prp-implementation*"), "claude-prp-implementation"),
    (("*kimi-implementation*", "*moonshot-implementation*"), "kimi-prp-implementation"),
    (("*claude-agents*", "*agent-pipeline*"), "claude-agent-pipeline"),
    (("*kimi-create-prp*", "*moonshot-create-prp*"), "kimi-create-prp"),
    (("*claude-code-review*",), None),
    (("*claude.yml",), None),
]


@dataclass
class MigrationResult:
    """What migrate_workflow did to one file."""
    path: Path
    status: str  # MIGRATED, CURRENT or UNKNOWN
    template: str | None = None
    backup: Path | None = None


def _render_template(name: str, library: str, version: str) -> str:
    text = (TEMPLATES_DIR / f"{name}.yml").read_text()
    return text.replace("__LIBRARY__", library).replace("__VERSION__", version)


def wrapper_template_for(filename: str) -> tuple[str, str | None]:
    """(status, template name) for a workflow file name."""
    for patterns, template in WRAPPER_RULES:
        if any(fnmatch.fnmatch(filename, p) for p in patterns):
            return (MIGRATED, template) if template else (CURRENT, None)
    return UNKNOWN, None


def migrate_workflow(
    path: Path,
    backup_dir: Path | None = None,
    library: str = DEFAULT_LIBRARY,
    version: str = DEFAULT_LIBRARY_VERSION,
) -> MigrationResult:
    """
    Replace a workflow with the reusable-workflow wrapper its name calls for.

    The replaced file is copied into backup_dir first (when given).
    Files that are already wrappers, or whose names match no rule, are untouched.
    """
    path = Path(path)
    status, template = wrapper_template_for(path.name)
    if template is None:
        if status == UNKNOWN:
            logger.warning(f"Unknown workflow pattern: {path.name}, skipping")
        return MigrationResult(path, status)

    backup = None
    if backup_dir is not None:
        backup_dir.mkdir(parents=True, exist_ok=True)
        backup = backup_dir / path.name
        shutil.copy2(path, backup)
    path.write_text(_render_template(template, library, version))
    logger.info(f"Migrated {path.name} to the {template} wrapper")
    return MigrationResult(path, status, template, backup)


def migrate_workflows(
    repo: Path,
    now: datetime | None = None,
    library: str = DEFAULT_LIBRARY,
    version: str = DEFAULT_LIBRARY_VERSION,
) -> tuple[list[MigrationResult], Path]:
    """
    Migrate every workflow in .github/workflows and add a Dependabot config.

    Originals go to .github/workflows/backup-<YYYYmmdd-HHMMSS>/. An existing
    .github/dependabot.yml is kept.

    Returns:
        (per-file results, backup directory)

    Raises:
        FileNotFoundError: if the repo has no .github/workflows directory
    """
    workflows_dir = Path(repo) / ".github" / "workflows"
    if not workflows_dir.is_dir():
        raise FileNotFoundError(f".github/workflows directory not found in {repo}")

    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    backup_dir = workflows_dir / f"backup-{stamp}"
    files = sorted([*workflows_dir.glob("*.yml"), *workflows_dir.glob("*.yaml")])
    results = [migrate_workflow(f, backup_dir, library, version) for f in files]

    dependabot = Path(repo) / ".github" / "dependabot.yml"
    if dependabot.exists():
        logger.info(f"Keeping existing {dependabot}")
    else:
        dependabot.write_text(_render_template("dependabot", library, version))
        logger.info(f"Created {dependabot}")
    return results, backup_dir
