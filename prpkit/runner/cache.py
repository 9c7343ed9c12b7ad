"""
Checksum-keyed cache of BATS test results.

A test file's results are reused while neither the file nor its shared
helper (../utils/test_helpers.bash) has changed and the cached entry is
younger than the TTL. Layout under the cache directory:

    manifest.json          version + one entry per test file
    results/<key>.tap      captured TAP output
    results/<key>.meta     JSON sidecar (test_file, timestamp, exit_code, duration)
    docker/<key>.tar.gz    saved image layers
    deps/<kind>_<sum>/     cached tool installs (bats, act)
    bats/, act/            reserved for tool caches
"""

import gzip
import hashlib
import json
import logging
import shutil
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from prpkit.lib import validate
from prpkit.lib.errors import ErrorType, HarnessError
from prpkit.runner.locking import atomic_write_text, file_lock

logger = logging.getLogger(__name__)

MANIFEST_VERSION = "1.0"
DEFAULT_TTL_SECONDS = 3600
SUBDIRS = ("bats", "act", "deps", "results", "docker")
CLEARABLE = ("all", "results", "docker", "deps")
NOT_FOUND = "NOTFOUND"

# Relative to the test file's directory
HELPER_DEPENDENCY = Path("..") / "utils" / "test_helpers.bash"

BATS_LIB_DIR = Path("/usr/lib/bats")


@dataclass
class CacheStats:
    """Summary of cache contents."""
    total_bytes: int
    results_count: int
    docker_count: int
    oldest_age_seconds: float | None


def file_checksum(path: Path) -> str:
    """SHA-256 hex digest of a file's contents."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def checksum(path: Path) -> str:
    """
    Content checksum of a file or directory tree.

    A directory hashes the sorted "<digest>  <path>" lines of every file
    beneath it. A missing path yields NOTFOUND.
    """
    path = Path(path)
    if path.is_file():
        return file_checksum(path)
    if path.is_dir():
        lines = sorted(
            f"{file_checksum(p)}  {p}" for p in path.rglob("*") if p.is_file()
        )
        return hashlib.sha256("\n".join(lines).encode()).hexdigest()
    return NOT_FOUND


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _dir_size(path: Path) -> int:
    if not path.exists():
        return 0
    return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())


def format_size(num_bytes: int) -> str:
    """Human-readable size (du -h style)."""
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G"):
        if size < 1024 or unit == "G":
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}G"


class TestCache:
    """Filesystem cache of test results keyed by content checksums."""

    __test__ = False  # Not a pytest test class

    def __init__(self, cache_dir: Path, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_seconds

    # --------------------------------------------------------
    # Layout
    # --------------------------------------------------------

    @property
    def results_dir(self) -> Path:
        return self.cache_dir / "results"

    @property
    def docker_dir(self) -> Path:
        return self.cache_dir / "docker"

    @property
    def deps_dir(self) -> Path:
        return self.cache_dir / "deps"

    @property
    def manifest_path(self) -> Path:
        return self.cache_dir / "manifest.json"

    @property
    def lock_path(self) -> Path:
        return self.cache_dir / "cache.lock"

    def init(self) -> None:
        """Create the cache layout and manifest if they don't exist."""
        for sub in SUBDIRS:
            (self.cache_dir / sub).mkdir(parents=True, exist_ok=True)
        if not self.manifest_path.exists():
            with file_lock(self.lock_path):
                if not self.manifest_path.exists():
                    atomic_write_text(
                        self.manifest_path,
                        json.dumps({"version": MANIFEST_VERSION, "entries": {}}, indent=2) + "\n",
                    )
        logger.debug(f"Test cache initialized at: {self.cache_dir}")

    # --------------------------------------------------------
    # Keys
    # --------------------------------------------------------

    def cache_key(self, test_file: Path) -> str:
        """<test checksum>_<helper checksum, empty when there is no helper>."""
        test_file = Path(test_file)
        helper = test_file.parent / HELPER_DEPENDENCY
        deps = checksum(helper) if helper.is_file() else ""
        return f"{checksum(test_file)}_{deps}"

    def _tap_path(self, key: str) -> Path:
        return self.results_dir / f"{key}.tap"

    def _meta_path(self, key: str) -> Path:
        return self.results_dir / f"{key}.meta"

    # --------------------------------------------------------
    # Results
    # --------------------------------------------------------

    def is_cached(self, test_file: Path, now: float | None = None) -> bool:
        """True when a result exists for the current content and is within the TTL."""
        tap_path = self._tap_path(self.cache_key(test_file))
        if not tap_path.is_file():
            return False
        now = time.time() if now is None else now
        age = now - tap_path.stat().st_mtime
        return age < self.ttl_seconds

    def get(self, test_file: Path) -> str | None:
        """Cached TAP output for the current content, ignoring the TTL."""
        tap_path = self._tap_path(self.cache_key(test_file))
        if not tap_path.is_file():
            return None
        return tap_path.read_text()

    def metadata(self, test_file: Path) -> dict | None:
        """
        Validated sidecar for the current content.

        Returns None when the sidecar is missing or fails validation (corrupt,
        or written by an older cache with string-typed fields); callers treat
        that as a cache miss and the next save overwrites it.
        """
        meta_path = self._meta_path(self.cache_key(test_file))
        if not meta_path.is_file():
            return None
        try:
            return validate.validate_file(meta_path, "cache_meta")
        except validate.ValidationError as e:
            logger.warning(f"Ignoring unusable cache metadata for {test_file}: {e}")
            return None

    def save(self, test_file: Path, tap_output: str, exit_code: int, duration: float = 0) -> str:
        """
        Store a test run's output and metadata.

        Returns:
            The cache key the entry was stored under
        """
        self.init()
        key = self.cache_key(test_file)
        meta = {
            "test_file": str(test_file),
            "timestamp": _utc_timestamp(),
            "exit_code": int(exit_code),
            "duration": round(max(float(duration), 0.0), 3),
        }
        meta_path = self._meta_path(key)
        validate.validate_before_write(meta, "cache_meta", meta_path)

        with file_lock(self.lock_path):
            atomic_write_text(self._tap_path(key), tap_output)
            atomic_write_text(meta_path, json.dumps(meta, indent=4) + "\n")
            self._record_manifest_entry(str(test_file), key, meta)

        logger.info(f"Cached results for: {test_file}")
        return key

    def _record_manifest_entry(self, test_file: str, key: str, meta: dict) -> None:
        # Caller holds the cache lock
        try:
            manifest = validate.validate_file(self.manifest_path, "cache_manifest")
        except validate.ValidationError as e:
            logger.warning(f"Rebuilding cache manifest: {e}")
            manifest = self._rebuild_manifest()
        manifest["entries"][test_file] = self._manifest_entry(key, meta)
        validate.validate_before_write(manifest, "cache_manifest", self.manifest_path)
        atomic_write_text(self.manifest_path, json.dumps(manifest, indent=2) + "\n")

    @staticmethod
    def _manifest_entry(key: str, meta: dict) -> dict:
        return {"key": key, "timestamp": meta["timestamp"], "exit_code": meta["exit_code"]}

    def _rebuild_manifest(self) -> dict:
        """Manifest reconstructed from the valid sidecars under results/."""
        entries = {}
        for meta_path in sorted(self.results_dir.glob("*.meta")):
            try:
                meta = validate.validate_file(meta_path, "cache_meta")
            except validate.ValidationError:
                continue
            entries[meta["test_file"]] = self._manifest_entry(meta_path.stem, meta)
        return {"version": MANIFEST_VERSION, "entries": entries}

    # --------------------------------------------------------
    # Maintenance
    # --------------------------------------------------------

    def clear(self, kind: str = "all") -> None:
        """
        Remove cached data.

        Raises:
            ValueError: for an unknown kind
        """
        if kind not in CLEARABLE:
            raise ValueError(f"Unknown cache type: {kind} (valid types: {', '.join(CLEARABLE)})")

        if kind == "all":
            if self.cache_dir.exists():
                shutil.rmtree(self.cache_dir)
            self.init()
            logger.info("Cleared all cache")
            return

        target = self.cache_dir / kind
        with file_lock(self.lock_path):
            if target.exists():
                for child in target.iterdir():
                    if child.is_dir():
                        shutil.rmtree(child)
                    else:
                        child.unlink()
            if kind == "results" and self.manifest_path.exists():
                atomic_write_text(
                    self.manifest_path,
                    json.dumps({"version": MANIFEST_VERSION, "entries": {}}, indent=2) + "\n",
                )
        logger.info(f"Cleared {kind} cache")

    def stats(self, now: float | None = None) -> CacheStats:
        """Sizes and counts of cached entries."""
        now = time.time() if now is None else now
        taps = list(self.results_dir.glob("*.tap")) if self.results_dir.exists() else []
        images = list(self.docker_dir.glob("*.tar.gz")) if self.docker_dir.exists() else []
        oldest = None
        if taps:
            oldest = now - min(p.stat().st_mtime for p in taps)
        return CacheStats(
            total_bytes=_dir_size(self.cache_dir),
            results_count=len(taps),
            docker_count=len(images),
            oldest_age_seconds=oldest,
        )

    def format_stats(self, now: float | None = None) -> str:
        stats = self.stats(now)
        lines = [
            "=== Test Cache Statistics ===",
            f"Total cache size: {format_size(stats.total_bytes)}",
            f"Cached test results: {stats.results_count}",
            f"Cached Docker images: {stats.docker_count}",
        ]
        if stats.oldest_age_seconds is not None:
            lines.append(f"Oldest cache entry: {int(stats.oldest_age_seconds // 3600)} hours ago")
        return "\n".join(lines)

    # --------------------------------------------------------
    # Docker layers and tool installs
    # --------------------------------------------------------

    def save_docker_layers(self, image: str, key: str) -> Path:
        """
        Save an image with `docker save`, gzip-compressed.

        Raises:
            HarnessError: BUILD_FAILED if docker save fails
        """
        self.init()
        target = self.docker_dir / f"{key}.tar.gz"
        logger.info(f"Caching Docker layers for: {image}")
        try:
            proc = subprocess.Popen(["docker", "save", image], stdout=subprocess.PIPE)
        except FileNotFoundError:
            raise HarnessError(ErrorType.DOCKER_NOT_FOUND, "Command 'docker' not found") from None

        with gzip.open(target, "wb") as out:
            shutil.copyfileobj(proc.stdout, out)
        proc.stdout.close()
        if proc.wait() != 0:
            target.unlink(missing_ok=True)
            raise HarnessError(ErrorType.BUILD_FAILED, f"docker save failed for {image}")
        return target

    def restore_docker_layers(self, key: str) -> bool:
        """Load a previously saved image. False when nothing is cached for key."""
        source = self.docker_dir / f"{key}.tar.gz"
        if not source.is_file():
            return False

        logger.info("Restoring Docker layers from cache")
        try:
            proc = subprocess.Popen(["docker", "load"], stdin=subprocess.PIPE, stdout=subprocess.DEVNULL)
        except FileNotFoundError:
            raise HarnessError(ErrorType.DOCKER_NOT_FOUND, "Command 'docker' not found") from None

        with gzip.open(source, "rb") as src:
            shutil.copyfileobj(src, proc.stdin)
        proc.stdin.close()
        return proc.wait() == 0

    def cache_dependency(self, kind: str, deps_file: Path) -> Path | None:
        """
        Copy an installed tool into deps/<kind>_<checksum of deps_file>.

        Supported kinds: bats (copies /usr/lib/bats), act (copies the act binary).

        Returns:
            The cache directory, or None when the tool isn't installed
        """
        if kind not in ("bats", "act"):
            raise ValueError(f"Unknown dependency type: {kind} (valid types: bats, act)")

        self.init()
        target = self.deps_dir / f"{kind}_{checksum(deps_file)}"

        if kind == "bats":
            if not BATS_LIB_DIR.is_dir():
                return None
            shutil.copytree(BATS_LIB_DIR, target, dirs_exist_ok=True)
        else:
            act_path = shutil.which("act")
            if act_path is None:
                return None
            target.mkdir(parents=True, exist_ok=True)
            shutil.copy2(act_path, target / "act")

        logger.info(f"Cached {kind} dependencies in {target}")
        return target
