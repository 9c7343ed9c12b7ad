"""
Safe parser for prp.env files.

A prp.env is checked into the consuming repository and read on CI
runners, so it is parsed as data and never sourced. Values containing
shell constructs are rejected outright rather than passed through.
"""

import re
from pathlib import Path

# construct -> pattern; the name is shown in the error
SHELL_CONSTRUCTS = {
    "backticks": re.compile(r'`'),
    "command substitution": re.compile(r'\$\('),
    "variable expansion": re.compile(r'\$\{'),
    "command chaining": re.compile(r';|&&'),
    "pipe": re.compile(r'\|'),
}

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')
QUOTES = ('"', "'")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in QUOTES:
        return value[1:-1]
    return value


def _parse_line(line: str) -> tuple[str, str]:
    """KEY=value (optionally prefixed by export) -> (key, value)."""
    if line.startswith("export "):
        line = line[len("export "):].lstrip()

    key, sep, value = line.partition("=")
    if not sep:
        raise ValueError("Invalid syntax (no '=')")

    key = key.strip()
    if not KEY_PATTERN.match(key):
        raise ValueError(f"Invalid key '{key}'")

    value = _unquote(value.strip())
    for construct, pattern in SHELL_CONSTRUCTS.items():
        if pattern.search(value):
            raise ValueError(f"Forbidden pattern in value of {key} ({construct})")
    return key, value


def parse_env(text: str, source: str = "<string>") -> dict[str, str]:
    """
    Parse env-file text; later assignments to a key win.

    Raises:
        ValueError: "<source>:<line>: ..." for bad syntax or a shell construct
    """
    values: dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            key, value = _parse_line(line)
        except ValueError as e:
            raise ValueError(f"{source}:{lineno}: {e}") from None
        values[key] = value
    return values


def load_env(filepath: Path) -> dict[str, str]:
    """
    Raises:
        FileNotFoundError: if the file is missing
        ValueError: as parse_env
    """
    path = Path(filepath)
    if not path.is_file():
        raise FileNotFoundError(f"Env file not found: {path}")
    return parse_env(path.read_text(), source=str(path))
