"""Tests for prpkit.lib.templates."""

import pytest

from prpkit.lib.templates import (
    substitute_arguments,
    build_implementation_prompt,
    build_creation_prompt,
    EXECUTE_TEMPLATE,
    CREATE_TEMPLATE,
)


class TestSubstituteArguments:
    """$ARGUMENTS placeholder substitution."""

    def test_replaces_every_occurrence(self):
        assert substitute_arguments("$ARGUMENTS and $ARGUMENTS", "x") == "x and x"

    def test_value_with_sed_metacharacters(self):
        value = "PRPs/a&b.md\nsecond line \\1"
        assert substitute_arguments("Run: $ARGUMENTS", value) == f"Run: {value}"

    def test_no_placeholder(self):
        assert substitute_arguments("static", "x") == "static"


class TestImplementationPrompt:
    """Prompt for implementing a PRP."""

    def test_uses_template(self, tmp_path):
        template = tmp_path / EXECUTE_TEMPLATE
        template.parent.mkdir(parents=True)
        template.write_text("Execute $ARGUMENTS now\n")
        prompt, used = build_implementation_prompt(tmp_path, "PRPs/todo/x.md")
        assert used
        assert prompt == "Execute PRPs/todo/x.md now\n"

    def test_fallback(self, tmp_path):
        prompt, used = build_implementation_prompt(tmp_path, "PRPs/todo/x.md")
        assert not used
        assert prompt == "Please implement the PRP located at: PRPs/todo/x.md\n"


class TestCreationPrompt:
    """Prompt for creating a PRP."""

    def test_uses_template(self, tmp_path):
        template = tmp_path / CREATE_TEMPLATE
        template.parent.mkdir(parents=True)
        template.write_text("Write a PRP for:\n$ARGUMENTS")
        prompt, used = build_creation_prompt(tmp_path, "# Issue: X\n\nbody")
        assert used
        assert prompt == "Write a PRP for:\n# Issue: X\n\nbody"

    def test_fallback_is_context(self, tmp_path):
        prompt, used = build_creation_prompt(tmp_path, "# Issue: X\n")
        assert not used
        assert prompt == "# Issue: X\n"
