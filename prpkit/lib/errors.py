"""
Error categories and recovery helpers for the test harness.

Failures are grouped into a fixed set of categories. Each category has a
numeric code (used as the process exit code) and a list of suggestions
shown to the user when the failure is reported.
"""

import logging
import shutil
import subprocess
import sys
import time
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, TextIO, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorType(Enum):
    """Failure categories with their exit codes."""
    DOCKER_NOT_FOUND = 1
    DOCKER_NOT_RUNNING = 2
    COMPOSE_NOT_FOUND = 3
    DISK_SPACE_LOW = 4
    BUILD_FAILED = 5
    TEST_FAILED = 6
    NETWORK_ERROR = 7
    PERMISSION_DENIED = 8
    TIMEOUT = 9
    INVALID_CONFIG = 10
    # Categories without a dedicated code
    COMMAND_NOT_FOUND = 101
    COMMAND_FAILED = 102
    RETRY_EXHAUSTED = 103
    UNKNOWN = 199

    @property
    def code(self) -> int:
        """Process exit code for this category."""
        return self.value if self.value <= 10 else 1


SUGGESTIONS: dict[ErrorType, list[str]] = {
    ErrorType.DOCKER_NOT_FOUND: [
        "Install Docker: https://docs.docker.com/get-docker/",
        "Ensure Docker is in your PATH",
        "Try: which docker",
    ],
    ErrorType.DOCKER_NOT_RUNNING: [
        "Start Docker Desktop (macOS/Windows)",
        "Start Docker service: sudo systemctl start docker (Linux)",
        "Check Docker status: docker info",
    ],
    ErrorType.COMPOSE_NOT_FOUND: [
        "Install Docker Compose: https://docs.docker.com/compose/install/",
        "Verify installation: docker-compose --version",
        "Or use: docker compose (newer Docker versions)",
    ],
    ErrorType.DISK_SPACE_LOW: [
        "Clean Docker resources: docker system prune -a",
        "Remove unused volumes: docker volume prune",
        "Check disk usage: df -h",
    ],
    ErrorType.BUILD_FAILED: [
        "Check Dockerfile syntax",
        "Verify all required files exist",
        "Try building with --no-cache",
        "Check build logs above for specific errors",
    ],
    ErrorType.TEST_FAILED: [
        "Check test logs for specific failures",
        "Run tests individually to isolate issues",
        "Verify test dependencies are installed",
        "Check environment variables",
    ],
    ErrorType.NETWORK_ERROR: [
        "Check internet connectivity",
        "Verify proxy settings if behind firewall",
        "Try: docker pull ubuntu:22.04 (test connectivity)",
    ],
    ErrorType.PERMISSION_DENIED: [
        "Add user to docker group: sudo usermod -aG docker $USER",
        "Log out and back in for group changes",
        "Or use sudo (not recommended)",
    ],
    ErrorType.TIMEOUT: [
        "Increase timeout values",
        "Check system resources (CPU/Memory)",
        "Run fewer tests in parallel",
    ],
    ErrorType.INVALID_CONFIG: [
        "Validate compose file: docker compose -f file.yml config",
        "Check YAML syntax",
        "Verify all referenced files exist",
    ],
}


class HarnessError(Exception):
    """A categorized harness failure."""

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        context: str | None = None,
        suggestions: str | None = None,
    ):
        self.error_type = error_type
        self.message = message
        self.context = context
        self.suggestions = suggestions
        super().__init__(message)

    @property
    def code(self) -> int:
        return self.error_type.code


def report_error(
    err: HarnessError,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> int:
    """
    Print a categorized error with suggestions and return its exit code.

    When log_file is given, an error block is appended to it as well.
    """
    out = stream or sys.stderr
    print(f"ERROR: {err.message}", file=out)
    print(f"Error Code: {err.code}", file=out)
    print(f"Error Type: {err.error_type.name}", file=out)
    if err.context:
        print(f"Context: {err.context}", file=out)

    suggestions = SUGGESTIONS.get(err.error_type)
    if suggestions:
        print("Suggestions:", file=out)
        for i, suggestion in enumerate(suggestions, 1):
            print(f"  {i}. {suggestion}", file=out)

    if err.suggestions:
        print("Additional suggestions:", file=out)
        print(err.suggestions, file=out)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(log_file, "a") as f:
                f.write("=== ERROR LOG ===\n")
                f.write(f"Timestamp: {datetime.now().isoformat(timespec='seconds')}\n")
                f.write(f"Error Code: {err.code}\n")
                f.write(f"Error Type: {err.error_type.name}\n")
                f.write(f"Error Message: {err.message}\n")
                f.write(f"Context: {err.context or ''}\n")
                f.write("=================\n")
        except OSError as e:
            logger.warning(f"Could not append to error log {log_file}: {e}")

    return err.code


def check_command(cmd: str, error_type: ErrorType, message: str | None = None) -> str:
    """
    Ensure an executable is on PATH.

    Returns:
        Absolute path of the executable

    Raises:
        HarnessError: of the given type when not found
    """
    path = shutil.which(cmd)
    if path is None:
        raise HarnessError(error_type, message or f"Command '{cmd}' not found")
    return path


def check_disk_space(required_mb: int, path: Path) -> int:
    """
    Ensure at least required_mb megabytes are free at path.

    Returns:
        Available megabytes

    Raises:
        HarnessError: DISK_SPACE_LOW when below the requirement
    """
    available_mb = shutil.disk_usage(path).free // (1024 * 1024)
    if available_mb < required_mb:
        raise HarnessError(
            ErrorType.DISK_SPACE_LOW,
            "Insufficient disk space",
            context=f"Required: {required_mb}MB, Available: {available_mb}MB",
        )
    return available_mb


def run_with_timeout(cmd: list[str], timeout: float, **kwargs) -> subprocess.CompletedProcess:
    """
    Run a command, failing on timeout or non-zero exit.

    Raises:
        HarnessError: TIMEOUT, COMMAND_NOT_FOUND or COMMAND_FAILED
    """
    display = " ".join(cmd)
    try:
        result = subprocess.run(cmd, timeout=timeout, **kwargs)
    except subprocess.TimeoutExpired:
        raise HarnessError(
            ErrorType.TIMEOUT, f"Command timed out after {timeout}s: {display}"
        ) from None
    except FileNotFoundError:
        raise HarnessError(ErrorType.COMMAND_NOT_FOUND, f"Command '{cmd[0]}' not found") from None

    if result.returncode != 0:
        raise HarnessError(
            ErrorType.COMMAND_FAILED,
            f"Command failed: {display}",
            context=f"exit code {result.returncode}",
        )
    return result


def retry_with_backoff(
    func: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 1,
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call func until it succeeds, doubling the delay between attempts.

    An attempt fails when func raises HarnessError or returns False.

    Raises:
        HarnessError: RETRY_EXHAUSTED after the last failed attempt
    """
    delay = initial_delay
    last_error: HarnessError | None = None

    for attempt in range(1, max_attempts + 1):
        logger.info(f"Attempt {attempt}/{max_attempts}: {description}")
        try:
            result = func()
            if result is not False:
                return result
            last_error = None
        except HarnessError as e:
            last_error = e
            logger.warning(f"Attempt {attempt} failed: {e.message}")

        if attempt < max_attempts:
            logger.warning(f"{description} failed, retrying in {delay}s...")
            sleep(delay)
            delay *= 2

    raise HarnessError(
        ErrorType.RETRY_EXHAUSTED,
        f"{description} failed after {max_attempts} attempts",
        context=last_error.message if last_error else None,
    )
