"""
Run `act` with the container platform matched to the host.
"""

import logging
import platform
import subprocess
from typing import Mapping

logger = logging.getLogger(__name__)

ARCH_PLATFORMS = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm/v7",
    "armhf": "arm/v7",
    "i386": "386",
    "i686": "386",
}


def detect_platform(machine: str | None = None, system: str | None = None) -> str:
    """<os>/<arch> for the host, falling back to amd64 for unknown architectures."""
    machine = machine if machine is not None else platform.machine()
    system = (system if system is not None else platform.system()).lower()

    arch = ARCH_PLATFORMS.get(machine)
    if arch is None:
        logger.warning(f"Unknown architecture: {machine}")
        arch = "amd64"
    return f"{system}/{arch}"


def platform_specified(args: list[str]) -> bool:
    return any(a == "--platform" or a.startswith("-P") for a in args)


def build_act_command(
    args: list[str],
    env: Mapping[str, str],
    machine: str | None = None,
    system: str | None = None,
) -> list[str]:
    cmd = ["act"]
    if not platform_specified(args) and not env.get("ACT_PLATFORM"):
        detected = detect_platform(machine, system)
        logger.info(f"Auto-detected platform: {detected}")
        cmd += ["--platform", detected]
    return cmd + list(args)


def run_act(args: list[str], env: Mapping[str, str]) -> int:
    """
    Run act and return its exit code.

    Raises:
        FileNotFoundError: when act isn't installed
    """
    cmd = build_act_command(args, env)
    logger.debug(f"Running: {' '.join(cmd)}")
    return subprocess.run(cmd, env=dict(env)).returncode
