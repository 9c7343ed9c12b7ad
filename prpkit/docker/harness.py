"""
Docker test harness: build the test image and run Compose test services.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Callable

import yaml

from prpkit.docker.compose import ComposeProject, compose_available
from prpkit.docker.monitor import FAILED, ServiceMonitor, ServiceResult
from prpkit.lib import errors
from prpkit.lib.config import HarnessConfig
from prpkit.lib.errors import ErrorType, HarnessError
from prpkit.lib.reports import write_reports

logger = logging.getLogger(__name__)

# CLI command -> Compose service
SERVICES = {
    "test": "test-runner",
    "unit": "unit-tests",
    "integration": "integration-tests",
    "security": "security-scan",
    "performance": "performance-tests",
    "reports": "test-reports",
}

PARALLEL_SERVICES = ["unit-tests", "integration-tests", "security-scan", "performance-tests"]
REPORT_SERVICE = "test-reports"
SHELL_SERVICE = "dev-shell"
COMBINED_TAP_NAME = "combined-results.tap"
FAILED_LOG_TAIL = 50
BUILD_TIMEOUT_SECONDS = 1800
DOCKER_QUERY_TIMEOUT = 30


def _docker(*args: str, capture: bool = True, timeout: float | None = DOCKER_QUERY_TIMEOUT) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            ["docker", *args],
            capture_output=capture,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise HarnessError(ErrorType.DOCKER_NOT_FOUND, "Command 'docker' not found") from None


def _tail(path: Path, lines: int) -> str:
    if not path.exists():
        return ""
    return "\n".join(path.read_text(errors="replace").splitlines()[-lines:])


def _ask(prompt: str) -> bool:
    """y/N prompt; no stdin (CI runners) answers no."""
    try:
        answer = input(prompt)
    except EOFError:
        logger.info("No input available, assuming no")
        return False
    return answer.strip().lower().startswith("y")


class DockerTestHarness:
    """Build, run and clean up the containerized test suite."""

    def __init__(self, config: HarnessConfig, verbose: bool = False):
        self.config = config
        self.project_dir = config.project_dir
        self.verbose = verbose
        self.compose = ComposeProject(config.compose_file, config.project_dir, verbose=verbose)

    # --------------------------------------------------------
    # Setup
    # --------------------------------------------------------

    def check_prerequisites(self) -> None:
        """
        Verify docker, the daemon and Compose are usable.

        Low disk space only warns.

        Raises:
            HarnessError: DOCKER_NOT_FOUND, DOCKER_NOT_RUNNING or COMPOSE_NOT_FOUND
        """
        logger.info("Checking prerequisites...")
        errors.check_command("docker", ErrorType.DOCKER_NOT_FOUND)

        info = _docker("info")
        if info.returncode != 0:
            raise HarnessError(ErrorType.DOCKER_NOT_RUNNING, "Docker daemon is not running")

        if not compose_available():
            raise HarnessError(
                ErrorType.COMPOSE_NOT_FOUND,
                "Docker Compose is not installed or not in PATH",
            )

        try:
            errors.check_disk_space(self.config.disk_space_required_mb, self.project_dir)
        except HarnessError as e:
            logger.warning(f"Continuing with low disk space: {e.context}")

        logger.info("Prerequisites check passed")

    def build(self, no_cache: bool = False) -> None:
        """
        Build the test image with BuildKit, retrying with backoff.

        Raises:
            HarnessError: BUILD_FAILED once retries are exhausted
        """
        cmd = ["docker", "build"]
        if no_cache:
            cmd.append("--no-cache")
        cmd += ["-f", str(self.config.dockerfile), "-t", self.config.image_name, "."]
        env = {**os.environ, "DOCKER_BUILDKIT": "1"}
        log_file = self.config.log_file

        def attempt() -> bool:
            try:
                if self.verbose:
                    result = subprocess.run(cmd, cwd=self.project_dir, env=env, timeout=BUILD_TIMEOUT_SECONDS)
                else:
                    log_file.parent.mkdir(parents=True, exist_ok=True)
                    with open(log_file, "w") as log:
                        result = subprocess.run(
                            cmd,
                            cwd=self.project_dir,
                            env=env,
                            stdout=log,
                            stderr=subprocess.STDOUT,
                            timeout=BUILD_TIMEOUT_SECONDS,
                        )
            except subprocess.TimeoutExpired:
                logger.warning(f"docker build timed out after {BUILD_TIMEOUT_SECONDS}s")
                return False
            return result.returncode == 0

        logger.info("Building test container...")
        try:
            errors.retry_with_backoff(
                attempt,
                max_attempts=self.config.build_retries,
                initial_delay=self.config.build_retry_delay,
                description="docker build",
            )
        except HarnessError as e:
            if self.verbose:
                raise HarnessError(ErrorType.BUILD_FAILED, "Container build failed after retries") from e
            tail = _tail(log_file, FAILED_LOG_TAIL)
            raise HarnessError(
                ErrorType.BUILD_FAILED,
                f"Container build failed. Check {log_file} for details",
                context=f"Last {FAILED_LOG_TAIL} lines of build log:\n{tail}" if tail else None,
            ) from e
        logger.info("Container built successfully")

    # --------------------------------------------------------
    # Running
    # --------------------------------------------------------

    def run_tests(self, service: str, detach: bool = False) -> int:
        logger.info(f"Running {service} tests...")
        code = self.compose.up([service], detach=detach, abort_on_exit=True)
        if code != 0:
            logger.error(f"{service} tests failed")
            return 1
        if detach:
            logger.info(f"{service} tests started in background")
        else:
            logger.info(f"{service} tests completed successfully")
        return 0

    def run_parallel(self, monitor: ServiceMonitor | None = None) -> int:
        """Run the parallel services under the live monitor, then report."""
        monitor = monitor or ServiceMonitor(self.compose, PARALLEL_SERVICES)
        results = monitor.run()
        failed = [r for r in results if r.status == FAILED]

        print()
        print("=== Test Results Summary ===")
        for result in results:
            if result.status == FAILED:
                print(f"❌ {result.service}: FAILED (exit code: {result.exit_code})")
            else:
                print(f"✅ {result.service}: PASSED")

        if failed:
            self._show_failed_logs(failed)
            print("Some tests failed!")
            return 1

        print("All tests completed successfully!")
        self.generate_combined_report()
        return 0

    def _show_failed_logs(self, failed: list[ServiceResult]) -> None:
        print()
        print("Failed services logs:")
        for result in failed:
            print()
            print(f"=== {result.service} logs ===")
            self.compose.logs(result.service, tail=FAILED_LOG_TAIL)

    def generate_combined_report(self) -> Path | None:
        """Concatenate per-service TAP files, format them, and run the report service."""
        report_dir = self.config.report_dir
        report_dir.mkdir(parents=True, exist_ok=True)
        combined = report_dir / COMBINED_TAP_NAME
        parts = sorted(p for p in report_dir.glob("*-results.tap") if p != combined)

        written = None
        if parts:
            combined.write_text("".join(p.read_text() for p in parts))
            write_reports(combined, report_dir)
            written = combined
        else:
            logger.info(f"No *-results.tap files in {report_dir}")

        self.compose.up([REPORT_SERVICE])
        return written

    def shell(self) -> int:
        logger.info("Starting interactive development shell...")
        return self.compose.run_service(SHELL_SERVICE)

    # --------------------------------------------------------
    # Maintenance
    # --------------------------------------------------------

    def clean(self, confirm: Callable[[str], bool] = _ask) -> None:
        logger.info("Cleaning up containers and volumes...")
        self.compose.down(remove_orphans=True)
        self.compose.down(volumes=True)

        image = self.config.image_name
        if _docker("image", "inspect", image).returncode == 0:
            _docker("rmi", image)
            logger.info(f"Removed test image {image}")

        dangling = _docker(
            "images", "-q",
            "-f", "dangling=true",
            "--filter", f"label=project={self.config.project_label}",
        )
        ids = dangling.stdout.split() if dangling.returncode == 0 else []
        if ids:
            removed = _docker("rmi", *ids)
            if removed.returncode == 0:
                logger.info("Removed dangling images")
            else:
                logger.warning(f"Could not remove some dangling images: {removed.stderr.strip()}")

        if self.config.docker_full_cleanup:
            logger.warning("Full Docker system cleanup requested")
            if confirm("This will remove ALL dangling Docker resources. Continue? (y/N) "):
                _docker("system", "prune", "-f", capture=False, timeout=None)
                logger.info("Full system cleanup completed")
            else:
                logger.info("Skipped full system cleanup")

        logger.info("Cleanup completed")

    def logs(self, service: str | None = None) -> int:
        return self.compose.logs(service)

    def status(self) -> int:
        code = self.compose.ps()
        print()
        print("Docker system info:")
        _docker("system", "df", capture=False)
        return code

    def validate(self) -> None:
        """
        Check prerequisites, the compose file and the Dockerfile.

        Raises:
            HarnessError: INVALID_CONFIG for a missing or malformed file
        """
        self.check_prerequisites()

        compose_file = self.config.compose_file
        if not compose_file.is_file():
            raise HarnessError(ErrorType.INVALID_CONFIG, f"Docker Compose file not found: {compose_file}")

        try:
            with open(compose_file) as f:
                yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise HarnessError(
                ErrorType.INVALID_CONFIG,
                f"Docker Compose file is not valid YAML: {compose_file}",
                context=str(e),
            ) from None

        ok, err = self.compose.config()
        if not ok:
            raise HarnessError(ErrorType.INVALID_CONFIG, "Docker Compose file validation failed", context=err)
        logger.info("Docker Compose file is valid")

        if not self.config.dockerfile.is_file():
            raise HarnessError(ErrorType.INVALID_CONFIG, f"{self.config.dockerfile.name} not found")

        logger.info("Docker setup validation completed")
