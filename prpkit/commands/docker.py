"""
prp docker - Build and run the containerized test suite.
"""

from pathlib import Path

from prpkit.docker.harness import SERVICES, DockerTestHarness
from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_SUCCESS, EXIT_USAGE
from prpkit.lib.errors import HarnessError, report_error

DOCKER_COMMANDS = ["build", *SERVICES, "shell", "clean", "logs", "status", "validate"]

# Commands that need a fresh image before running
_NEEDS_BUILD = {"test", "unit", "integration", "security", "performance", "shell"}


def _dispatch(harness: DockerTestHarness, args) -> int:
    command = args.docker_cmd

    if command in ("clean", "logs", "status"):
        if command == "clean":
            harness.clean()
            return EXIT_SUCCESS
        if command == "logs":
            return harness.logs(args.service)
        return harness.status()

    if command == "validate":
        harness.validate()
        print("Docker setup validation completed")
        return EXIT_SUCCESS

    harness.check_prerequisites()

    if command == "build":
        harness.build(no_cache=args.no_cache)
        return EXIT_SUCCESS

    if command in _NEEDS_BUILD:
        harness.build(no_cache=args.no_cache)

    if command == "shell":
        return harness.shell()

    if args.parallel and command != "reports":
        return harness.run_parallel()

    return harness.run_tests(SERVICES[command], detach=args.detach)


def cmd_docker(args, project_dir: Path, config: HarnessConfig) -> int:
    if args.docker_cmd not in DOCKER_COMMANDS:
        print(f"ERROR: Unknown command: {args.docker_cmd}")
        return EXIT_USAGE

    harness = DockerTestHarness(config, verbose=args.verbose)
    try:
        return _dispatch(harness, args)
    except HarnessError as e:
        return report_error(e, config.log_file)
