"""
JSON Schema checks for the files the test cache keeps on disk.

Two documents are covered, both under prpkit/schemas/:
    cache_meta      results/<key>.meta sidecar
    cache_manifest  manifest.json

The cache validates before every write and after every read, so a
corrupt or hand-edited file is reported instead of silently trusted.
"""

import json
from functools import lru_cache
from pathlib import Path

import jsonschema

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"


class ValidationError(Exception):
    """A cache document does not match its schema."""

    def __init__(self, schema_name: str, message: str, path: str | None = None):
        self.schema_name = schema_name
        self.path = path
        where = f" at {path}" if path else ""
        super().__init__(f"[{schema_name}] {message}{where}")


@lru_cache(maxsize=None)
def _validator(schema_name: str) -> jsonschema.Draft7Validator:
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.is_file():
        raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
    schema = json.loads(schema_path.read_text())
    jsonschema.Draft7Validator.check_schema(schema)
    return jsonschema.Draft7Validator(schema)


def _location(error: jsonschema.ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


def validate(data: dict, schema_name: str) -> None:
    """
    Check data against a named schema.

    Every violation is reported, ordered by location.

    Raises:
        ValidationError: naming the schema and the offending fields
    """
    errors = sorted(_validator(schema_name).iter_errors(data), key=lambda e: list(map(str, e.absolute_path)))
    if not errors:
        return
    if len(errors) == 1:
        raise ValidationError(schema_name, errors[0].message, _location(errors[0]))
    details = "; ".join(f"{_location(e)}: {e.message}" for e in errors)
    raise ValidationError(schema_name, f"{len(errors)} errors: {details}")


def validate_file(filepath: Path, schema_name: str) -> dict:
    """Read a cache document and return it once it passes its schema."""
    filepath = Path(filepath)
    if not filepath.is_file():
        raise ValidationError(schema_name, f"File not found: {filepath}")
    try:
        data = json.loads(filepath.read_text())
    except json.JSONDecodeError as e:
        raise ValidationError(schema_name, f"Invalid JSON in {filepath}: {e}") from None
    validate(data, schema_name)
    return data


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """Refuse to persist a document that would fail validate_file later."""
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(schema_name, f"Refusing to write invalid data to {filepath}: {e}") from None
