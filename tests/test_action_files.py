"""Tests for the composite actions under actions/."""

import re
from pathlib import Path

import pytest
import yaml

ACTIONS_DIR = Path(__file__).parent.parent / "actions"

EXPECTED = {
    "prp-management": (
        {"comment_body", "issue_number", "create_branch", "move_to_done"},
        {"prp_path", "prp_name", "branch_name", "has_prp"},
    ),
    "github-operations": (
        {"bot_token", "operation", "issue_number", "pr_title", "pr_body", "pr_head",
         "pr_base", "comment_body", "bot_username", "draft_pr"},
        {"pr_number", "pr_url", "should_process", "comment_id"},
    ),
    "claude-setup": (
        {"claude_oauth_token", "bot_token", "fetch_depth", "git_user_name",
         "git_user_email", "configure_git"},
        {"repository_path", "git_user_name", "git_user_email", "setup_timestamp"},
    ),
}

INPUT_REF = re.compile(r"\$\{\{\s*inputs\.([A-Za-z0-9_-]+)\s*\}\}")
STEP_REF = re.compile(r"\$\{\{\s*steps\.([A-Za-z0-9_-]+)\.outputs\.([A-Za-z0-9_]+)\s*\}\}")


def _load(name):
    with open(ACTIONS_DIR / name / "action.yml") as f:
        return yaml.safe_load(f)


@pytest.mark.parametrize("name", sorted(EXPECTED))
class TestActionFiles:
    """Each action keeps its documented interface and runs through prp."""

    def test_interface(self, name):
        action = _load(name)
        inputs, outputs = EXPECTED[name]
        assert set(action["inputs"]) == inputs
        assert set(action["outputs"]) == outputs
        assert action["runs"]["using"] == "composite"

    def test_outputs_map_to_a_step(self, name):
        action = _load(name)
        step_ids = {s.get("id") for s in action["runs"]["steps"]}
        for output, entry in action["outputs"].items():
            match = STEP_REF.fullmatch(entry["value"])
            assert match, output
            assert match.group(1) in step_ids
            assert match.group(2) == output

    def test_inputs_only_reach_shell_through_env(self, name):
        action = _load(name)
        declared = set(action["inputs"])
        for step in action["runs"]["steps"]:
            if "run" in step:
                assert not INPUT_REF.search(step["run"])
            for value in (step.get("env") or {}).values():
                for ref in INPUT_REF.findall(str(value)):
                    assert ref in declared

    def test_installs_and_runs_prp(self, name):
        scripts = [s["run"] for s in _load(name)["runs"]["steps"] if "run" in s]
        assert any("pip install" in s and "$GITHUB_ACTION_PATH/../.." in s for s in scripts)
        assert any('prp "${args[@]}"' in s for s in scripts)


class TestDefaults:
    """Input defaults and per-action step layout."""

    def test_prp_management_defaults(self):
        inputs = _load("prp-management")["inputs"]
        assert inputs["create_branch"]["default"] == "true"
        assert inputs["move_to_done"]["default"] == "true"
        assert inputs["comment_body"]["required"] is True

    def test_github_operations_dispatch(self):
        action = _load("github-operations")
        assert action["inputs"]["pr_base"]["default"] == "main"
        assert action["inputs"]["bot_username"]["default"] == "Claude AI Bot"
        step = next(s for s in action["runs"]["steps"] if s.get("id") == "github-op")
        assert step["env"]["GH_TOKEN"] == "${{ inputs.bot_token }}"
        for operation in ("create-pr)", "comment-issue|comment-pr)", "check-bot-status)"):
            assert operation in step["run"]

    def test_claude_setup_checks_out_first(self):
        steps = _load("claude-setup")["runs"]["steps"]
        assert steps[0]["uses"] == "actions/checkout@v4"
        assert steps[0]["with"]["fetch-depth"] == "${{ inputs.fetch_depth }}"
        assert _load("claude-setup")["inputs"]["fetch_depth"]["default"] == "0"
