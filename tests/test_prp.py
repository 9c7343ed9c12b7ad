"""Tests for prpkit.lib.prp."""

from pathlib import Path

import pytest

from prpkit.lib.prp import (
    PRPNotFoundError,
    extract_prp_path,
    prp_name_from_path,
    make_branch_name,
    resolve_prp,
    state_path,
    state_of,
    move_prp,
    move_to_done,
    list_prps,
)


@pytest.fixture
def repo(tmp_path):
    (tmp_path / "PRPs" / "todo").mkdir(parents=True)
    (tmp_path / "PRPs" / "todo" / "add-auth.md").write_text("# Add auth\n")
    return tmp_path


class TestExtractPrpPath:
    """Finding a PRP path in comment text."""

    def test_finds_path_in_text(self):
        assert extract_prp_path("@claude implement PRPs/todo/add-auth.md please") == "PRPs/todo/add-auth.md"

    def test_markdown_link(self):
        assert extract_prp_path("see [the PRP](PRPs/feature.md)") == "PRPs/feature.md"

    def test_first_match_wins(self):
        assert extract_prp_path("PRPs/a.md then PRPs/b.md") == "PRPs/a.md"

    def test_trailing_punctuation(self):
        assert extract_prp_path("Implement PRPs/todo/x.md.") == "PRPs/todo/x.md"

    def test_no_match(self):
        assert extract_prp_path("nothing to see here") is None
        assert extract_prp_path("") is None

    def test_requires_md_extension(self):
        assert extract_prp_path("PRPs/todo/notes.txt") is None


class TestNaming:
    """PRP names and branch names."""

    def test_name_from_path(self):
        assert prp_name_from_path("PRPs/todo/add-auth.md") == "add-auth"

    def test_branch_name_uses_unix_seconds(self):
        assert make_branch_name("add-auth", 1700000000.9) == "implement/add-auth-1700000000"


class TestResolvePrp:
    """Resolving a referenced PRP inside the repository."""

    def test_resolves_existing_file(self, repo):
        ref = resolve_prp("go: PRPs/todo/add-auth.md", repo, now=1700000000)
        assert ref.path == "PRPs/todo/add-auth.md"
        assert ref.name == "add-auth"
        assert ref.branch_name == "implement/add-auth-1700000000"

    def test_no_reference(self, repo):
        assert resolve_prp("hello", repo) is None

    def test_missing_file(self, repo):
        with pytest.raises(PRPNotFoundError) as exc:
            resolve_prp("PRPs/todo/ghost.md", repo)
        assert str(exc.value) == "PRP file does not exist: PRPs/todo/ghost.md"

    def test_rejects_path_escaping_prp_dir(self, tmp_path):
        repo = tmp_path / "repo"
        (repo / "PRPs").mkdir(parents=True)
        outside = tmp_path / "outside.md"
        outside.write_text("secret\n")

        with pytest.raises(PRPNotFoundError) as exc:
            resolve_prp("please do PRPs/../../outside.md", repo)

        assert "outside PRPs/" in str(exc.value)
        assert outside.exists()
        assert not (repo / "PRPs" / "done").exists()

    def test_rejects_symlink_out_of_prp_dir(self, repo, tmp_path):
        target = tmp_path.parent / f"{tmp_path.name}-elsewhere.md"
        target.write_text("x\n")
        (repo / "PRPs" / "todo" / "link.md").symlink_to(target)
        with pytest.raises(PRPNotFoundError):
            resolve_prp("PRPs/todo/link.md", repo)


class TestStates:
    """PRP state directories."""

    def test_state_path(self):
        assert state_path("x", "done") == "PRPs/done/x.md"
        assert state_path("x", "todo", "docs/PRPs") == "docs/PRPs/todo/x.md"

    def test_state_path_rejects_unknown(self):
        with pytest.raises(ValueError):
            state_path("x", "archived")

    def test_state_of(self):
        assert state_of("PRPs/done/x.md") == "done"
        assert state_of("PRPs/todo/x.md") == "todo"
        assert state_of("PRPs/x.md") == "todo"


class TestMove:
    """Moving PRPs between state directories."""

    def test_move_to_done(self, repo):
        ref = resolve_prp("PRPs/todo/add-auth.md", repo)
        dest = move_to_done(repo, ref)
        assert dest == repo / "PRPs" / "done" / "add-auth.md"
        assert dest.read_text() == "# Add auth\n"
        assert not (repo / "PRPs" / "todo" / "add-auth.md").exists()

    def test_missing_source_returns_none(self, repo):
        assert move_prp(repo, "PRPs/todo/ghost.md", "PRPs/done/ghost.md") is None

    def test_overwrites_destination(self, repo):
        (repo / "PRPs" / "done").mkdir()
        (repo / "PRPs" / "done" / "add-auth.md").write_text("old\n")
        move_prp(repo, "PRPs/todo/add-auth.md", "PRPs/done/add-auth.md")
        assert (repo / "PRPs" / "done" / "add-auth.md").read_text() == "# Add auth\n"

    def test_same_path_is_noop(self, repo):
        dest = move_prp(repo, "PRPs/todo/add-auth.md", "PRPs/todo/add-auth.md")
        assert dest.exists()

    def test_refuses_source_outside_repo(self, tmp_path):
        repo = tmp_path / "repo"
        repo.mkdir()
        (tmp_path / "outside.md").write_text("x\n")
        with pytest.raises(ValueError, match="outside the repository"):
            move_prp(repo, "../outside.md", "PRPs/done/outside.md")
        assert (tmp_path / "outside.md").exists()


class TestListPrps:
    """Listing PRPs in a state directory."""

    def test_lists_sorted(self, repo):
        (repo / "PRPs" / "todo" / "a-first.md").write_text("")
        names = [p.name for p in list_prps(repo, "todo")]
        assert names == ["a-first.md", "add-auth.md"]

    def test_missing_directory(self, repo):
        assert list_prps(repo, "done") == []
