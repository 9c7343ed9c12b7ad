"""
Configuration loader for prpkit.

Settings come from three layers, later layers winning:
built-in defaults, prp.env in the project directory, process environment.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from . import envparse

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "prp.env"

DEFAULTS = {
    "PRP_DIR": "PRPs",
    "CACHE_DIR": ".test-cache",
    "CACHE_TTL_SECONDS": "3600",
    "MAX_PARALLEL_JOBS": "4",
    "COMPOSE_FILE": "docker-compose.test.yml",
    "DOCKERFILE": "Dockerfile.test",
    "IMAGE_NAME": "actions-test",
    "PROJECT_LABEL": "actions-lib",
    "LOG_FILE": "docker-test.log",
    "REPORT_DIR": "reports",
    "BOT_USERNAME": "Claude AI Bot",
    "GIT_USER_NAME": "Claude AI Bot",
    "GIT_USER_EMAIL": "claude-ai@users.noreply.github.com",
    "DISK_SPACE_REQUIRED_MB": "2000",
    "BUILD_RETRIES": "3",
    "BUILD_RETRY_DELAY": "2",
    "DOCKER_FULL_CLEANUP": "false",
}


class ConfigError(Exception):
    """A configuration value could not be interpreted."""
    pass


@dataclass
class HarnessConfig:
    """Resolved settings for one project checkout."""
    project_dir: Path
    prp_dir: str  # Relative to project_dir, e.g. "PRPs"
    cache_dir: Path
    cache_ttl_seconds: int
    max_parallel_jobs: int
    compose_file: Path
    dockerfile: Path
    image_name: str
    project_label: str  # Docker label used to find this project's dangling images
    log_file: Path
    report_dir: Path
    bot_username: str
    git_user_name: str
    git_user_email: str
    disk_space_required_mb: int
    build_retries: int
    build_retry_delay: int
    docker_full_cleanup: bool


def _int(values: Mapping[str, str], key: str, minimum: int = 0) -> int:
    raw = values[key]
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got '{raw}'") from None
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def _path(project_dir: Path, value: str) -> Path:
    path = Path(value)
    return path if path.is_absolute() else project_dir / path


def resolve_values(project_dir: Path, environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Merge defaults, prp.env and environment into one flat dict."""
    if environ is None:
        environ = os.environ

    values = dict(DEFAULTS)

    env_file = project_dir / CONFIG_FILENAME
    if env_file.exists():
        file_values = envparse.load_env(env_file)
        unknown = sorted(set(file_values) - set(DEFAULTS))
        if unknown:
            logger.warning(f"Ignoring unknown keys in {env_file}: {', '.join(unknown)}")
        values.update({k: v for k, v in file_values.items() if k in DEFAULTS})

    for key in DEFAULTS:
        if key in environ and environ[key] != "":
            values[key] = environ[key]

    return values


def load_config(project_dir: Path, environ: Mapping[str, str] | None = None) -> HarnessConfig:
    """
    Load configuration for a project directory.

    Raises:
        ConfigError: if a numeric setting is malformed
        ValueError: if prp.env contains invalid syntax
    """
    project_dir = Path(project_dir).resolve()
    values = resolve_values(project_dir, environ)

    return HarnessConfig(
        project_dir=project_dir,
        prp_dir=values["PRP_DIR"],
        cache_dir=_path(project_dir, values["CACHE_DIR"]),
        cache_ttl_seconds=_int(values, "CACHE_TTL_SECONDS"),
        max_parallel_jobs=_int(values, "MAX_PARALLEL_JOBS", minimum=1),
        compose_file=_path(project_dir, values["COMPOSE_FILE"]),
        dockerfile=_path(project_dir, values["DOCKERFILE"]),
        image_name=values["IMAGE_NAME"],
        project_label=values["PROJECT_LABEL"],
        log_file=_path(project_dir, values["LOG_FILE"]),
        report_dir=_path(project_dir, values["REPORT_DIR"]),
        bot_username=values["BOT_USERNAME"],
        git_user_name=values["GIT_USER_NAME"],
        git_user_email=values["GIT_USER_EMAIL"],
        disk_space_required_mb=_int(values, "DISK_SPACE_REQUIRED_MB"),
        build_retries=_int(values, "BUILD_RETRIES", minimum=1),
        build_retry_delay=_int(values, "BUILD_RETRY_DELAY"),
        docker_full_cleanup=values["DOCKER_FULL_CLEANUP"].lower() == "true",
    )
