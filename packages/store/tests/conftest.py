"""Shared fixtures for gitbench-store tests."""

from __future__ import annotations

import shutil
from datetime import datetime, timezone
from pathlib import Path

import pytest

from gitbench_core.errors import VcsError
from gitbench_core.models import Author, Measurement, Revision, Run
from gitbench_store.vcs.base import PushResult, RefScope, VcsProvider


class FakeVcs(VcsProvider):
    """In-memory repository whose checked-out tree is mirrored onto ``repo_path``.

    Branch trees are dicts of posix path -> bytes. ``server`` is the remote,
    ``tracking`` the remote-tracking refs, ``local`` the local branches.
    Any method can be made to fail on its n-th call with ``fail()``.
    """

    def __init__(self, repo_path: Path, branch: str = "main", tree: dict | None = None, dirty: bool = False):
        self.repo_path = repo_path
        self.head = branch
        self.local: dict[str, dict[str, bytes]] = {branch: dict(tree or {})}
        self.tracking: dict[str, dict[str, bytes]] = {}
        self.server: dict[str, dict[str, bytes]] = {}
        self.dirty = dirty
        self.stashes: list[str] = []
        self.index: dict[str, bytes] | None = None
        self.calls: list[str] = []
        self.commits = 0
        self._counts: dict[str, int] = {}
        self._failures: dict[tuple[str, int], Exception] = {}
        self._materialize(self.local[branch])

    # ------------------------------------------------------------------ #

    def fail(self, method: str, exc: Exception | None = None, on_call: int = 1) -> None:
        self._failures[(method, on_call)] = exc or VcsError(f"injected {method} failure")

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        self._counts[method] = self._counts.get(method, 0) + 1
        exc = self._failures.get((method, self._counts[method]))
        if exc is not None:
            raise exc

    def _materialize(self, tree: dict[str, bytes]) -> None:
        self.repo_path.mkdir(parents=True, exist_ok=True)
        for entry in self.repo_path.iterdir():
            if entry.name == ".git":
                continue
            if entry.is_dir():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        for rel, content in tree.items():
            target = self.repo_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

    def _disk_files(self, prefix: str) -> dict[str, bytes]:
        root = self.repo_path / prefix
        if not root.exists():
            return {}
        return {
            p.relative_to(self.repo_path).as_posix(): p.read_bytes()
            for p in sorted(root.rglob("*"))
            if p.is_file()
        }

    # ------------------------------------------------------------------ #
    # VcsProvider                                                          #
    # ------------------------------------------------------------------ #

    def current_branch(self, repo_path):
        self._enter("current_branch")
        return self.head

    def has_uncommitted_changes(self, repo_path):
        self._enter("has_uncommitted_changes")
        return self.dirty

    def stash_push(self, repo_path, message):
        self._enter("stash_push")
        if not self.dirty:
            return False
        self.stashes.append(message)
        self.dirty = False
        return True

    def stash_pop(self, repo_path):
        self._enter("stash_pop")
        if not self.stashes:
            raise VcsError("No stash entries found.")
        self.stashes.pop()
        self.dirty = True

    def fetch(self, repo_path, remote, branch):
        self._enter("fetch")
        if branch not in self.server:
            raise VcsError(f"couldn't find remote ref {branch}")
        self.tracking[branch] = dict(self.server[branch])

    def branch_exists(self, repo_path, name, scope, remote="origin"):
        self._enter("branch_exists")
        return name in (self.local if scope is RefScope.LOCAL else self.tracking)

    def checkout(self, repo_path, name, remote=None, force=False, reset=False):
        self._enter("checkout")
        if self.dirty and not force:
            raise VcsError("Your local changes would be overwritten by checkout.")
        if reset and remote is not None and name in self.tracking:
            self.local[name] = dict(self.tracking[name])
        elif name not in self.local:
            if remote is None or name not in self.tracking:
                raise VcsError(f"pathspec '{name}' did not match any file(s) known to git")
            self.local[name] = dict(self.tracking[name])
        self.head = name
        self.index = None
        self._materialize(self.local[name])

    def create_orphan_branch(self, repo_path, name):
        self._enter("create_orphan_branch")
        self.local[name] = {}
        self.head = name

    def read_file_at_ref(self, repo_path, ref, path):
        self._enter("read_file_at_ref")
        if ref.startswith("origin/"):
            tree = self.tracking[ref.split("/", 1)[1]]
        else:
            tree = self.local[ref]
        return tree.get(path)

    def stage_all(self, repo_path, path):
        self._enter("stage_all")
        prefix = path.strip("/") + "/"
        kept = {k: v for k, v in self.local[self.head].items() if not k.startswith(prefix)}
        self.index = {**kept, **self._disk_files(path)}

    def diff_against_parent(self, repo_path):
        self._enter("diff_against_parent")
        return self.index != self.local[self.head]

    def commit(self, repo_path, message):
        self._enter("commit")
        self.commits += 1
        self.local[self.head] = dict(self.index or {})
        return f"{self.commits:040x}"

    def push(self, repo_path, remote, branch, force=False):
        self._enter("push")
        if self.server.get(branch) == self.local[branch]:
            return PushResult.NOTHING_TO_PUSH
        self.server[branch] = dict(self.local[branch])
        self.tracking[branch] = dict(self.local[branch])
        return PushResult.OK

    def revision_info(self, repo_path, ref=None):
        self._enter("revision_info")
        return make_revision()

    def remote_url(self, repo_path, remote="origin"):
        self._enter("remote_url")
        return "https://github.com/owner/repo.git"


def make_revision(sha: str = "a" * 40) -> Revision:
    return Revision(
        id=sha,
        summary="Speed up parser",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        origin_url=f"https://github.com/owner/repo/commit/{sha}",
        author=Author(name="alice", email="alice@example.com", handle="alice"),
    )


def make_run(sha: str = "a" * 40, value: float = 100.0, day: int = 1, names=("bench_add",)) -> Run:
    return Run(
        revision=make_revision(sha),
        captured_at=datetime(2024, 1, day, 12, tzinfo=timezone.utc),
        source="cargo",
        measurements=tuple(Measurement(name=n, value=value, unit="ns/iter", variance="+/- 5") for n in names),
    )


@pytest.fixture
def repo_path(tmp_path):
    return tmp_path / "repo"


@pytest.fixture
def fake_vcs(repo_path):
    return FakeVcs(repo_path, tree={"src/lib.rs": b"fn main() {}\n"})


@pytest.fixture
def run_factory():
    return make_run
