"""BATS test execution."""

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from prpkit.lib.errors import ErrorType, HarnessError

BATS_BINARY = "bats"


@dataclass
class BatsResult:
    """Outcome of one bats invocation."""
    exit_code: int
    output: str  # TAP on stdout, stderr appended
    duration: float
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


def run_bats(test_file: Path, timeout: float | None = None, cwd: Path | None = None) -> BatsResult:
    """
    Run one BATS file with TAP output.

    Raises:
        HarnessError: COMMAND_NOT_FOUND when bats isn't installed
    """
    start = time.monotonic()
    try:
        result = subprocess.run(
            [BATS_BINARY, "--tap", str(test_file)],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError:
        raise HarnessError(
            ErrorType.COMMAND_NOT_FOUND,
            "Command 'bats' not found",
            suggestions="  Install BATS: npm install -g bats (or brew install bats-core)",
        ) from None
    except subprocess.TimeoutExpired as e:
        output = e.stdout or ""
        if isinstance(output, bytes):
            output = output.decode(errors="replace")
        return BatsResult(
            exit_code=-1,
            output=output + f"\n# bats timed out after {timeout}s\n",
            duration=time.monotonic() - start,
            timed_out=True,
        )

    return BatsResult(
        exit_code=result.returncode,
        output=result.stdout,
        duration=time.monotonic() - start,
    )
