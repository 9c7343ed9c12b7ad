"""
prp workflows - Validate, pin and migrate workflow files.
"""

from pathlib import Path

from prpkit.lib import workflows
from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_ERROR, EXIT_SUCCESS, EXIT_USAGE


def _targets(args, project_dir: Path) -> list[Path]:
    if args.paths:
        return [Path(p) for p in args.paths]
    return workflows.find_workflow_files(project_dir)


def cmd_workflows_validate(args, project_dir: Path, config: HarnessConfig) -> int:
    """Parse each workflow/action file; fail if any is invalid."""
    files = _targets(args, project_dir)
    if not files:
        print("No workflow files found")
        return EXIT_SUCCESS

    failures = 0
    for path in files:
        try:
            workflows.validate_yaml(path)
        except (ValueError, OSError) as e:
            print(f"  [FAIL] {path}: {e}")
            failures += 1
        else:
            print(f"  [OK]   {path}")

    print(f"{len(files)} file(s), {failures} invalid")
    return EXIT_ERROR if failures else EXIT_SUCCESS


def cmd_workflows_pin(args, project_dir: Path, config: HarnessConfig) -> int:
    """Pin action refs to commit SHAs, backing each changed file up as .bak."""
    files = _targets(args, project_dir)
    if not files:
        print("No workflow files found")
        return EXIT_SUCCESS

    total = 0
    for path in files:
        print(f"Processing: {path}")
        count = workflows.pin_actions(path, dry_run=args.dry_run)
        total += count

        text = path.read_text()
        unpinned = [r for r in workflows.find_action_refs(text) if not r.pinned]
        for ref in unpinned:
            print(f"  [WARN] line {ref.line}: {ref.action}@{ref.ref} still unpinned")
        if count:
            verb = "Would update" if args.dry_run else "Updated"
            print(f"  {verb} {count} action(s)")
        else:
            print("  No updates needed")

    if total and not args.dry_run:
        print("Backup files created with .bak extension; review with: git diff")
    return EXIT_SUCCESS


def _parse_runner_map(pairs: list[str]) -> dict[str, str]:
    runner_map = dict(workflows.DEFAULT_RUNNER_MAP)
    for pair in pairs:
        old, sep, new = pair.partition("=")
        if not sep or not old or not new:
            raise ValueError(f"Invalid runner mapping '{pair}' (expected OLD=NEW)")
        runner_map[old] = new
    return runner_map


def cmd_workflows_migrate_runners(args, project_dir: Path, config: HarnessConfig) -> int:
    """Rewrite runs-on through the runner map, backing each changed file up as .backup."""
    try:
        runner_map = _parse_runner_map(args.map or [])
    except ValueError as e:
        print(f"ERROR: {e}")
        return EXIT_USAGE

    files = [Path(p) for p in args.paths] or [
        f for f in workflows.find_workflow_files(project_dir) if f.name not in ("action.yml", "action.yaml")
    ]
    if not files:
        print("No workflow files found")
        return EXIT_SUCCESS

    total = 0
    for path in files:
        print(f"Processing: {path}")
        count = workflows.migrate_runners(path, runner_map, dry_run=args.dry_run)
        total += count
        if count:
            verb = "Would update" if args.dry_run else "Updated"
            print(f"  {verb} {count} runner reference(s)")
        else:
            print("  No updates needed")

    if not args.dry_run:
        created = workflows.write_fallback_template(project_dir)
        if created:
            print(f"Created fallback template: {created}")
        if total:
            print("Backup files created with .backup extension; review with: git diff")
    return EXIT_SUCCESS


def cmd_workflows_migrate(args, project_dir: Path, config: HarnessConfig) -> int:
    """Replace workflows with reusable-workflow wrappers chosen by file name."""
    repo = Path(args.repo).resolve() if args.repo else project_dir
    try:
        results, backup_dir = workflows.migrate_workflows(repo, library=args.library, version=args.version)
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        return EXIT_ERROR

    labels = {
        workflows.MIGRATED: "MIGRATED",
        workflows.CURRENT: "CURRENT",
        workflows.UNKNOWN: "SKIPPED",
    }
    for result in results:
        detail = f" -> {result.template}" if result.template else ""
        print(f"  [{labels[result.status]}] {result.path.name}{detail}")

    migrated = sum(1 for r in results if r.status == workflows.MIGRATED)
    print(f"{len(results)} workflow(s), {migrated} migrated")
    if migrated:
        print(f"Originals backed up to: {backup_dir}")
    return EXIT_SUCCESS
