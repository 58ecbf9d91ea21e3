"""End-to-end tests for GitProvider against real repositories.

Each test builds a bare "remote" and a clone of it under tmp_path. Skipped
when no git executable is available.
"""

from __future__ import annotations

import shutil
import subprocess

import pytest

from conftest import make_run
from gitbench_core.errors import VcsError
from gitbench_core.history import load
from gitbench_store.branch import BranchStore
from gitbench_store.publish import NO_CHANGES, PublishConfig, PublishCoordinator
from gitbench_store.vcs.base import PushResult, RefScope
from gitbench_store.vcs.git import GitProvider

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def _git(cwd, *args) -> str:
    return subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True).stdout


@pytest.fixture(autouse=True)
def _isolated_git(monkeypatch, tmp_path):
    # Keep the developer's global config (hooks, signing, default branch) out of the way.
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Alice")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "alice@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Alice")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "alice@example.com")


@pytest.fixture
def clone(tmp_path):
    remote = tmp_path / "remote.git"
    work = tmp_path / "work"
    _git(tmp_path, "init", "-q", "--bare", str(remote))
    _git(tmp_path, "init", "-q", str(work))
    _git(work, "checkout", "-q", "-b", "main")
    (work / "README.md").write_text("hello\n")
    _git(work, "add", "README.md")
    _git(work, "commit", "-q", "-m", "Initial commit")
    _git(work, "remote", "add", "origin", str(remote))
    _git(work, "push", "-q", "origin", "main")
    return work


@pytest.fixture
def git():
    return GitProvider(timeout=30)


# ---------------------------------------------------------------------------
# Provider operations
# ---------------------------------------------------------------------------


class TestGitProvider:
    def test_current_branch(self, git, clone):
        assert git.current_branch(clone) == "main"

    def test_current_branch_detached_returns_sha(self, git, clone):
        sha = _git(clone, "rev-parse", "HEAD").strip()
        _git(clone, "checkout", "-q", "--detach")
        assert git.current_branch(clone) == sha

    def test_uncommitted_changes_include_untracked(self, git, clone):
        assert git.has_uncommitted_changes(clone) is False
        (clone / "new.txt").write_text("x")
        assert git.has_uncommitted_changes(clone) is True

    def test_stash_roundtrip_restores_untracked(self, git, clone):
        (clone / "new.txt").write_text("x")
        (clone / "README.md").write_text("changed\n")

        assert git.stash_push(clone, "gitbench test") is True
        assert not (clone / "new.txt").exists()
        git.stash_pop(clone)
        assert (clone / "new.txt").read_text() == "x"
        assert (clone / "README.md").read_text() == "changed\n"

    def test_stash_nothing_returns_false(self, git, clone):
        assert git.stash_push(clone, "gitbench test") is False

    def test_branch_exists_scopes(self, git, clone):
        assert git.branch_exists(clone, "main", RefScope.LOCAL)
        assert git.branch_exists(clone, "main", RefScope.REMOTE)
        assert not git.branch_exists(clone, "gh-pages", RefScope.LOCAL)

    def test_fetch_missing_branch_raises(self, git, clone):
        with pytest.raises(VcsError):
            git.fetch(clone, "origin", "gh-pages")

    def test_read_file_at_ref(self, git, clone):
        assert git.read_file_at_ref(clone, "main", "README.md") == b"hello\n"
        assert git.read_file_at_ref(clone, "main", "missing.txt") is None

    def test_revision_info(self, git, clone):
        revision = git.revision_info(clone)
        assert revision.summary == "Initial commit"
        assert revision.author.name == "Alice"
        assert revision.author.email == "alice@example.com"
        assert revision.timestamp.tzinfo is not None
        # The remote is a local path, not GitHub.
        assert revision.origin_url is None

    def test_remote_url_missing_remote(self, git, clone):
        assert git.remote_url(clone, "upstream") is None

    def test_failed_command_records_stderr(self, git, clone):
        with pytest.raises(VcsError) as excinfo:
            git.checkout(clone, "does-not-exist")
        assert excinfo.value.command[:2] == ["git", "checkout"]
        assert excinfo.value.stderr

    def test_checkout_reset_moves_local_branch_to_remote(self, git, clone):
        remote_head = _git(clone, "rev-parse", "origin/main").strip()
        (clone / "local.txt").write_text("x")
        _git(clone, "add", "local.txt")
        _git(clone, "commit", "-q", "-m", "Local only")
        _git(clone, "checkout", "-q", "--detach")

        git.checkout(clone, "main", remote="origin", reset=True)

        assert git.current_branch(clone) == "main"
        assert _git(clone, "rev-parse", "HEAD").strip() == remote_head

    def test_missing_executable(self, clone):
        with pytest.raises(VcsError, match="Could not run git"):
            GitProvider(git="definitely-not-git").current_branch(clone)

    def test_commit_without_identity_uses_fallback(self, git, clone, monkeypatch):
        for var in ("GIT_AUTHOR_NAME", "GIT_AUTHOR_EMAIL", "GIT_COMMITTER_NAME", "GIT_COMMITTER_EMAIL"):
            monkeypatch.delenv(var)
        (clone / "a.txt").write_text("a")
        git.stage_all(clone, ".")
        assert git.diff_against_parent(clone) is True

        sha = git.commit(clone, "Add a")
        assert _git(clone, "log", "-1", "--format=%an", sha).strip() == "gitbench"

    def test_push_up_to_date(self, git, clone):
        assert git.push(clone, "origin", "main") is PushResult.NOTHING_TO_PUSH


# ---------------------------------------------------------------------------
# Publishing through real git
# ---------------------------------------------------------------------------


class TestPublishEndToEnd:
    def test_first_and_second_publish(self, git, clone):
        coordinator = PublishCoordinator(git, clone, PublishConfig())

        first = coordinator.publish("cargo", make_run(sha="1" * 40, day=1))
        second = coordinator.publish("cargo", make_run(sha="2" * 40, day=2))

        assert first != NO_CHANGES and second != NO_CHANGES
        assert git.current_branch(clone) == "main"
        history = load(_git(clone, "show", "origin/gh-pages:dev/bench/data.json"))
        assert [r.revision.id[0] for r in history.entries["cargo"]] == ["1", "2"]
        # The publish branch holds only generated data.
        files = _git(clone, "ls-tree", "-r", "--name-only", "origin/gh-pages").split()
        assert files == ["dev/bench/data.json"]

    def test_uncommitted_work_survives_publish(self, git, clone):
        (clone / "README.md").write_text("work in progress\n")
        (clone / "scratch.txt").write_text("untracked\n")

        PublishCoordinator(git, clone, PublishConfig()).publish("cargo", make_run())

        assert git.current_branch(clone) == "main"
        assert (clone / "README.md").read_text() == "work in progress\n"
        assert (clone / "scratch.txt").read_text() == "untracked\n"
        assert not (clone / "dev").exists()
        assert _git(clone, "stash", "list") == ""

    def test_push_failure_restores_state(self, git, clone, tmp_path):
        (clone / "README.md").write_text("work in progress\n")
        _git(clone, "remote", "set-url", "--push", "origin", str(tmp_path / "nowhere.git"))

        with pytest.raises(VcsError):
            PublishCoordinator(git, clone, PublishConfig()).publish("cargo", make_run())

        assert git.current_branch(clone) == "main"
        assert (clone / "README.md").read_text() == "work in progress\n"
        assert _git(clone, "stash", "list") == ""

    def test_branch_store_reads_published_history(self, git, clone, tmp_path):
        PublishCoordinator(git, clone, PublishConfig()).publish("cargo", make_run())

        other = tmp_path / "other"
        _git(tmp_path, "clone", "-q", str(tmp_path / "remote.git"), str(other))
        history = BranchStore(git, other).load()
        assert history.total_runs() == 1

    def test_republish_keeps_commits_pushed_by_another_clone(self, git, clone, tmp_path):
        PublishCoordinator(git, clone, PublishConfig()).publish("cargo", make_run(sha="1" * 40, day=1))

        other = tmp_path / "other"
        _git(tmp_path, "clone", "-q", "-b", "main", str(tmp_path / "remote.git"), str(other))
        PublishCoordinator(git, other, PublishConfig()).publish("cargo", make_run(sha="2" * 40, day=2))
        _git(other, "checkout", "-q", "gh-pages")
        (other / "index.html").write_text("<html/>\n")
        _git(other, "add", "index.html")
        _git(other, "commit", "-q", "-m", "Add dashboard")
        _git(other, "push", "-q", "origin", "gh-pages")
        other_head = _git(other, "rev-parse", "HEAD").strip()

        # The first clone's local gh-pages is now two commits behind the remote.
        PublishCoordinator(git, clone, PublishConfig()).publish("cargo", make_run(sha="3" * 40, day=3))

        files = _git(clone, "ls-tree", "-r", "--name-only", "origin/gh-pages").split()
        assert files == ["dev/bench/data.json", "index.html"]
        history = load(_git(clone, "show", "origin/gh-pages:dev/bench/data.json"))
        assert [r.revision.id[0] for r in history.entries["cargo"]] == ["1", "2", "3"]
        # Raises CalledProcessError unless the other clone's head is still in the history.
        _git(clone, "merge-base", "--is-ancestor", other_head, "origin/gh-pages")
