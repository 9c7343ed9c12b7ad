"""
prp cache - Inspect and manage the test-result cache.
"""

from pathlib import Path

from prpkit.lib.config import HarnessConfig
from prpkit.lib.constants import EXIT_ERROR, EXIT_SUCCESS, EXIT_USAGE
from prpkit.runner.cache import TestCache


def _cache(config: HarnessConfig) -> TestCache:
    return TestCache(config.cache_dir, config.cache_ttl_seconds)


def cmd_cache_init(args, project_dir: Path, config: HarnessConfig) -> int:
    cache = _cache(config)
    cache.init()
    print(f"Test cache initialized at: {cache.cache_dir}")
    return EXIT_SUCCESS


def cmd_cache_check(args, project_dir: Path, config: HarnessConfig) -> int:
    """Print CACHED or NOT_CACHED; exit 0 only on a hit."""
    if _cache(config).is_cached(Path(args.test_file)):
        print("CACHED")
        return EXIT_SUCCESS
    print("NOT_CACHED")
    return EXIT_ERROR


def cmd_cache_get(args, project_dir: Path, config: HarnessConfig) -> int:
    output = _cache(config).get(Path(args.test_file))
    if output is None:
        print(f"ERROR: No cached results for {args.test_file}")
        return EXIT_ERROR
    print(output, end="")
    return EXIT_SUCCESS


def cmd_cache_save(args, project_dir: Path, config: HarnessConfig) -> int:
    output_file = Path(args.output_file)
    if not output_file.is_file():
        print(f"ERROR: Output file not found: {output_file}")
        return EXIT_ERROR

    key = _cache(config).save(
        Path(args.test_file),
        output_file.read_text(),
        args.exit_code,
        args.duration,
    )
    print(f"Cached results for: {args.test_file} ({key})")
    return EXIT_SUCCESS


def cmd_cache_clear(args, project_dir: Path, config: HarnessConfig) -> int:
    try:
        _cache(config).clear(args.kind)
    except ValueError as e:
        print(f"ERROR: {e}")
        return EXIT_USAGE
    print(f"Cleared {args.kind} cache")
    return EXIT_SUCCESS


def cmd_cache_stats(args, project_dir: Path, config: HarnessConfig) -> int:
    print(_cache(config).format_stats())
    return EXIT_SUCCESS
