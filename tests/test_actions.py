"""Tests for prpkit.lib.actions."""

import logging

import pytest

from prpkit.lib import actions


@pytest.fixture
def output_file(tmp_path, monkeypatch):
    path = tmp_path / "github_output"
    path.write_text("")
    monkeypatch.setenv("GITHUB_OUTPUT", str(path))
    return path


class TestSetOutput:
    """Step outputs written to GITHUB_OUTPUT."""

    def test_single_line(self, output_file):
        actions.set_output("has_prp", "true")
        assert output_file.read_text() == "has_prp=true\n"

    def test_multiline_uses_heredoc(self, output_file):
        actions.set_output("context", "line one\nline two")
        lines = output_file.read_text().splitlines()
        assert lines[0].startswith("context<<ghadelimiter_")
        delimiter = lines[0].split("<<", 1)[1]
        assert lines[1:] == ["line one", "line two", delimiter]

    def test_set_outputs_in_order(self, output_file):
        actions.set_outputs({"prp_path": "PRPs/a.md", "prp_name": "a"})
        assert output_file.read_text() == "prp_path=PRPs/a.md\nprp_name=a\n"

    def test_unset_output_is_noop(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
        actions.set_output("x", "y")
        assert list(tmp_path.iterdir()) == []


class TestAnnotations:
    """Workflow-command annotations."""

    @pytest.fixture(autouse=True)
    def in_actions(self, monkeypatch):
        monkeypatch.setenv("GITHUB_ACTIONS", "true")

    def test_levels(self, capsys):
        actions.notice("found it")
        actions.warning("careful")
        actions.error("broken")
        out = capsys.readouterr().out.splitlines()
        assert out == ["::notice::found it", "::warning::careful", "::error::broken"]

    def test_escapes_special_characters(self, capsys):
        actions.error("100%\r\ndone")
        assert capsys.readouterr().out.strip() == "::error::100%25%0D%0Adone"

    def test_logged_outside_actions(self, monkeypatch, capsys, caplog):
        monkeypatch.delenv("GITHUB_ACTIONS")
        with caplog.at_level(logging.INFO, logger="prpkit.lib.actions"):
            actions.notice("found it")
            actions.error("broken")
        assert "::" not in capsys.readouterr().out
        assert [(r.levelno, r.getMessage()) for r in caplog.records] == [
            (logging.INFO, "found it"),
            (logging.ERROR, "broken"),
        ]


class TestMisc:
    """Helpers around the Actions runner environment."""

    def test_format_bool(self):
        assert actions.format_bool(True) == "true"
        assert actions.format_bool(False) == "false"

    def test_in_github_actions(self, monkeypatch):
        monkeypatch.setenv("GITHUB_ACTIONS", "true")
        assert actions.in_github_actions()
        monkeypatch.setenv("GITHUB_ACTIONS", "false")
        assert not actions.in_github_actions()

    def test_step_summary(self, tmp_path, monkeypatch):
        summary = tmp_path / "summary.md"
        monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary))
        assert actions.write_step_summary("# Results\n")
        assert summary.read_text() == "# Results\n"

    def test_step_summary_unset(self, monkeypatch):
        monkeypatch.delenv("GITHUB_STEP_SUMMARY", raising=False)
        assert actions.write_step_summary("x") is False
