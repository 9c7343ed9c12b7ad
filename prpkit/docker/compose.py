"""
Docker Compose wrapper.

Prefers the legacy `docker-compose` binary when it is on PATH and falls
back to the `docker compose` plugin otherwise. Commands that the user
watches (up, logs, run) stream to the terminal; queries capture output.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from prpkit.lib.errors import ErrorType, HarnessError

logger = logging.getLogger(__name__)

INSPECT_TIMEOUT_SECONDS = 30
LOG_LINE_WIDTH = 50


@dataclass
class ContainerState:
    """Container status as reported by docker inspect."""
    status: str  # created, running, exited, ... or "unknown"
    exit_code: int | None

    @property
    def exited(self) -> bool:
        return self.status == "exited"


def compose_command() -> list[str]:
    """Base argv for Compose."""
    if shutil.which("docker-compose"):
        return ["docker-compose"]
    return ["docker", "compose"]


def compose_available() -> bool:
    """True when either Compose flavour responds."""
    if shutil.which("docker-compose"):
        return True
    try:
        result = subprocess.run(
            ["docker", "compose", "version"],
            capture_output=True,
            text=True,
            timeout=INSPECT_TIMEOUT_SECONDS,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


class ComposeProject:
    """One compose file, driven through the Compose CLI."""

    def __init__(self, compose_file: Path, project_dir: Path, verbose: bool = False):
        self.compose_file = Path(compose_file)
        self.project_dir = Path(project_dir)
        self.verbose = verbose
        self.base_cmd = compose_command()

    def _argv(self, *args: str) -> list[str]:
        argv = list(self.base_cmd)
        if self.verbose:
            argv.append("--verbose")
        argv += ["-f", str(self.compose_file), *args]
        return argv

    def _run(self, *args: str, capture: bool = False, timeout: float | None = None, **kwargs) -> subprocess.CompletedProcess:
        argv = self._argv(*args)
        logger.debug(f"Running: {' '.join(argv)}")
        try:
            return subprocess.run(
                argv,
                cwd=self.project_dir,
                capture_output=capture,
                text=True,
                timeout=timeout,
                **kwargs,
            )
        except FileNotFoundError:
            raise HarnessError(
                ErrorType.COMPOSE_NOT_FOUND,
                "Docker Compose is not installed or not in PATH",
            ) from None

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    def up(self, services: list[str], detach: bool = False, abort_on_exit: bool = False) -> int:
        args = ["up"]
        if detach:
            args.append("-d")
        if abort_on_exit and not detach:
            args.append("--abort-on-container-exit")
        return self._run(*args, *services).returncode

    def wait(self, services: list[str]) -> int:
        return self._run("wait", *services).returncode

    def stop(self, services: list[str] | None = None) -> int:
        return self._run("stop", *(services or [])).returncode

    def down(self, remove_orphans: bool = False, volumes: bool = False) -> int:
        args = ["down"]
        if remove_orphans:
            args.append("--remove-orphans")
        if volumes:
            args.append("-v")
        return self._run(*args).returncode

    def run_service(self, service: str, remove: bool = True) -> int:
        args = ["run"]
        if remove:
            args.append("--rm")
        return self._run(*args, service).returncode

    # --------------------------------------------------------
    # Queries
    # --------------------------------------------------------

    def ps(self) -> int:
        return self._run("ps").returncode

    def logs(self, service: str | None = None, tail: int | None = None) -> int:
        args = ["logs"]
        if tail is not None:
            args.append(f"--tail={tail}")
        if service:
            args.append(service)
        return self._run(*args).returncode

    def config(self) -> tuple[bool, str]:
        """Validate the compose file. Returns (ok, error output)."""
        result = self._run("config", "-q", capture=True, timeout=INSPECT_TIMEOUT_SECONDS)
        return result.returncode == 0, result.stderr.strip()

    def container_id(self, service: str) -> str | None:
        result = self._run("ps", "-q", service, capture=True, timeout=INSPECT_TIMEOUT_SECONDS)
        if result.returncode != 0:
            return None
        cid = result.stdout.strip()
        return cid.splitlines()[0] if cid else None


def inspect_state(container_id: str) -> ContainerState:
    """Status and exit code of a container; "unknown" when inspect fails."""
    try:
        result = subprocess.run(
            ["docker", "inspect", container_id, "--format", "{{.State.Status}} {{.State.ExitCode}}"],
            capture_output=True,
            text=True,
            timeout=INSPECT_TIMEOUT_SECONDS,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return ContainerState("unknown", None)

    if result.returncode != 0:
        return ContainerState("unknown", None)

    parts = result.stdout.split()
    if not parts:
        return ContainerState("unknown", None)
    exit_code = None
    if len(parts) > 1:
        try:
            exit_code = int(parts[1])
        except ValueError:
            pass
    return ContainerState(parts[0], exit_code)


def last_log_line(container_id: str, width: int = LOG_LINE_WIDTH) -> str:
    """Last line of a container's combined output, truncated to width."""
    try:
        result = subprocess.run(
            ["docker", "logs", "--tail", "1", container_id],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=INSPECT_TIMEOUT_SECONDS,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return ""
    lines = result.stdout.strip().splitlines()
    return lines[-1][:width] if lines else ""
