"""Unit tests for the GitHub repository manager (git is faked)."""

import json
from pathlib import Path

import pytest

from ragpilot.errors import RepoFetchError
from ragpilot.repos import RepoManager, parse_github_url


class FakeGit:
    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def __call__(self, args, cwd):
        self.calls.append((list(args), cwd))
        if self.fail_on and args[0] == self.fail_on:
            raise RepoFetchError(f"git {args[0]} failed: fatal")
        if args[0] == "clone":
            target = Path(args[-1])
            target.mkdir(parents=True, exist_ok=True)
            (target / "README.md").write_text("# repo", encoding="utf-8")


@pytest.fixture
def git():
    return FakeGit()


@pytest.fixture
def manager(tmp_path, git):
    manager = RepoManager(tmp_path / "storage", git=git)
    manager.initialize()
    return manager


class TestParseGithubUrl:
    @pytest.mark.parametrize("value", [
        "octo/lib",
        "https://github.com/octo/lib",
        "https://github.com/octo/lib.git",
        "https://github.com/octo/lib/",
        "git@github.com:octo/lib.git",
    ])
    def test_accepted_forms(self, value):
        assert parse_github_url(value) == ("octo", "lib", "https://github.com/octo/lib.git")

    @pytest.mark.parametrize("value", ["", "lib", "https://gitlab.com/octo", "a/b/c"])
    def test_rejected(self, value):
        with pytest.raises(RepoFetchError):
            parse_github_url(value)


class TestFetch:
    def test_shallow_clone_and_metadata(self, manager, git, tmp_path):
        repo = manager.fetch("octo/lib")

        assert repo.key == "octo/lib"
        assert repo.path == str(tmp_path / "storage" / "repos" / "octo" / "lib")
        assert git.calls[0][0] == ["clone", "--depth", "1", "https://github.com/octo/lib.git", repo.path]

        stored = json.loads((tmp_path / "storage" / "repos-metadata.json").read_text(encoding="utf-8"))
        assert stored[0]["owner"] == "octo"
        assert stored[0]["name"] == "lib"

    def test_known_repo_is_pulled(self, manager, git):
        manager.fetch("octo/lib")
        manager.fetch("https://github.com/octo/lib")

        assert git.calls[-1][0] == ["pull"]
        assert len(manager.repos()) == 1

    def test_known_repo_without_update_is_refused(self, manager):
        manager.fetch("octo/lib")
        with pytest.raises(RepoFetchError):
            manager.fetch("octo/lib", update_existing=False)

    def test_clone_failure_records_nothing(self, tmp_path):
        manager = RepoManager(tmp_path / "storage", git=FakeGit(fail_on="clone"))
        manager.initialize()
        with pytest.raises(RepoFetchError):
            manager.fetch("octo/lib")
        assert manager.repos() == []

    def test_metadata_survives_reload(self, manager, tmp_path, git):
        manager.fetch("octo/lib")
        reloaded = RepoManager(tmp_path / "storage", git=git)
        reloaded.initialize()
        assert "octo/lib" in reloaded


class TestRemove:
    def test_remove_deletes_checkout(self, manager):
        repo = manager.fetch("octo/lib")
        manager.remove("octo/lib")

        assert manager.repos() == []
        assert not Path(repo.path).exists()

    def test_remove_unknown(self, manager):
        with pytest.raises(RepoFetchError):
            manager.remove("nobody/nothing")

    def test_refresh_unknown(self, manager):
        with pytest.raises(RepoFetchError):
            manager.refresh("nobody/nothing")
