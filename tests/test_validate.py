"""Tests for prpkit.lib.validate."""

import json

import pytest

from prpkit.lib.validate import ValidationError, validate, validate_file, validate_before_write


def _meta(**overrides):
    meta = {
        "test_file": "tests/unit/example.bats",
        "timestamp": "2025-01-02T03:04:05Z",
        "exit_code": 0,
        "duration": 1.5,
    }
    meta.update(overrides)
    return meta


class TestCacheMetaSchema:
    """Cache sidecar schema."""

    def test_valid_meta(self):
        validate(_meta(), "cache_meta")

    def test_missing_field(self):
        meta = _meta()
        del meta["exit_code"]
        with pytest.raises(ValidationError, match="cache_meta"):
            validate(meta, "cache_meta")

    def test_timestamp_must_be_utc_z(self):
        with pytest.raises(ValidationError):
            validate(_meta(timestamp="2025-01-02 03:04:05"), "cache_meta")

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            validate(_meta(duration=-1), "cache_meta")

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            validate(_meta(extra="x"), "cache_meta")


class TestManifestSchema:
    """Cache manifest schema."""

    def test_empty_manifest(self):
        validate({"version": "1.0", "entries": {}}, "cache_manifest")

    def test_entry_requires_key(self):
        with pytest.raises(ValidationError):
            validate({"version": "1.0", "entries": {"a.bats": {"timestamp": "x"}}}, "cache_manifest")


class TestFileHelpers:
    """Validating JSON files on disk."""

    def test_validate_file_reads_json(self, tmp_path):
        path = tmp_path / "x.meta"
        path.write_text(json.dumps(_meta()))
        assert validate_file(path, "cache_meta")["exit_code"] == 0

    def test_validate_file_missing(self, tmp_path):
        with pytest.raises(ValidationError, match="File not found"):
            validate_file(tmp_path / "missing.meta", "cache_meta")

    def test_validate_file_bad_json(self, tmp_path):
        path = tmp_path / "x.meta"
        path.write_text("{not json")
        with pytest.raises(ValidationError, match="Invalid JSON"):
            validate_file(path, "cache_meta")

    def test_validate_before_write_names_target(self, tmp_path):
        target = tmp_path / "x.meta"
        with pytest.raises(ValidationError, match="Refusing to write"):
            validate_before_write({"test_file": "a"}, "cache_meta", target)
        assert not target.exists()

    def test_unknown_schema(self):
        with pytest.raises(ValidationError, match="Schema file not found"):
            validate({}, "no_such_schema")


class TestErrorReporting:
    """Validation error messages."""

    def test_single_error_names_field(self):
        with pytest.raises(ValidationError) as exc:
            validate(_meta(exit_code="zero"), "cache_meta")
        assert exc.value.path == "exit_code"

    def test_all_errors_reported(self):
        with pytest.raises(ValidationError, match="2 errors") as exc:
            validate(_meta(exit_code="zero", duration=-1), "cache_meta")
        assert "duration:" in str(exc.value)
        assert "exit_code:" in str(exc.value)
