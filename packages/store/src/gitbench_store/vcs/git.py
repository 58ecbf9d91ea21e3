"""GitProvider — VcsProvider backed by the ``git`` executable.

Each call is one subprocess with captured output and a timeout. Stash,
orphan branches and authenticated push use the operator's own git config
and credential helpers.
"""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime, timezone
from pathlib import Path

from gitbench_core.errors import VcsError
from gitbench_core.gh.commit_comment import commit_url_from_remote, extract_github_username
from gitbench_core.models import Author, Revision

from gitbench_store.vcs.base import PushResult, RefScope, VcsProvider

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 120
_FALLBACK_NAME = "gitbench"
_FALLBACK_EMAIL = "gitbench@users.noreply.github.com"
_LOG_FORMAT = "%H%x00%s%x00%ct%x00%an%x00%ae"


class GitProvider(VcsProvider):
    def __init__(self, timeout: int = _DEFAULT_TIMEOUT, git: str = "git"):
        self._timeout = timeout
        self._git = git

    # ------------------------------------------------------------------ #
    # Plumbing                                                             #
    # ------------------------------------------------------------------ #

    def _run(
        self, repo_path: Path, *args: str, check: bool = True, binary: bool = False
    ) -> subprocess.CompletedProcess:
        cmd = [self._git, *args]
        logger.debug("$ %s (in %s)", " ".join(cmd), repo_path)
        try:
            result = subprocess.run(
                cmd,
                cwd=repo_path,
                capture_output=True,
                text=not binary,
                timeout=self._timeout,
            )
        except FileNotFoundError as e:
            raise VcsError(f"Could not run git in {repo_path}: {e}", cmd) from e
        except subprocess.TimeoutExpired as e:
            raise VcsError(f"`{' '.join(cmd)}` timed out after {self._timeout}s", cmd) from e

        if check and result.returncode != 0:
            stderr = result.stderr if not binary else result.stderr.decode("utf-8", errors="replace")
            raise VcsError(f"`{' '.join(cmd)}` failed: {stderr.strip()}", cmd, stderr)
        return result

    def _ref_exists(self, repo_path: Path, ref: str) -> bool:
        return self._run(repo_path, "rev-parse", "--verify", "--quiet", ref, check=False).returncode == 0

    # ------------------------------------------------------------------ #
    # VcsProvider                                                          #
    # ------------------------------------------------------------------ #

    def current_branch(self, repo_path: Path) -> str:
        result = self._run(repo_path, "symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
        # Detached HEAD (the usual state in CI checkouts): restore by commit id.
        return self._run(repo_path, "rev-parse", "HEAD").stdout.strip()

    def has_uncommitted_changes(self, repo_path: Path) -> bool:
        return bool(self._run(repo_path, "status", "--porcelain").stdout.strip())

    def stash_push(self, repo_path: Path, message: str) -> bool:
        # Untracked files count as dirty and must survive the orphan cleanup.
        result = self._run(repo_path, "stash", "push", "--include-untracked", "-m", message)
        return "No local changes to save" not in result.stdout + result.stderr

    def stash_pop(self, repo_path: Path) -> None:
        self._run(repo_path, "stash", "pop")

    def fetch(self, repo_path: Path, remote: str, branch: str) -> None:
        refspec = f"+refs/heads/{branch}:refs/remotes/{remote}/{branch}"
        self._run(repo_path, "fetch", remote, refspec)

    def branch_exists(self, repo_path: Path, name: str, scope: RefScope, remote: str = "origin") -> bool:
        ref = f"refs/heads/{name}" if scope is RefScope.LOCAL else f"refs/remotes/{remote}/{name}"
        return self._ref_exists(repo_path, ref)

    def checkout(
        self, repo_path: Path, name: str, remote: str | None = None, force: bool = False, reset: bool = False
    ) -> None:
        flags = ["-f"] if force else []
        if remote is not None and reset:
            self._run(repo_path, "checkout", *flags, "-B", name, f"{remote}/{name}")
            return
        if (
            remote is not None
            and not self.branch_exists(repo_path, name, RefScope.LOCAL)
            and self.branch_exists(repo_path, name, RefScope.REMOTE, remote)
        ):
            self._run(repo_path, "checkout", *flags, "-b", name, "--track", f"{remote}/{name}")
            return
        self._run(repo_path, "checkout", *flags, name, "--")

    def create_orphan_branch(self, repo_path: Path, name: str) -> None:
        self._run(repo_path, "checkout", "--orphan", name)
        self._run(repo_path, "rm", "-r", "-q", "--cached", "--ignore-unmatch", ".")

    def read_file_at_ref(self, repo_path: Path, ref: str, path: str) -> bytes | None:
        spec = f"{ref}:{path}"
        if self._run(repo_path, "cat-file", "-e", spec, check=False).returncode != 0:
            return None
        return self._run(repo_path, "show", spec, binary=True).stdout

    def stage_all(self, repo_path: Path, path: str) -> None:
        self._run(repo_path, "add", "-A", "--", path)

    def diff_against_parent(self, repo_path: Path) -> bool:
        # Against the empty tree when the branch is unborn.
        result = self._run(repo_path, "diff", "--cached", "--quiet", check=False)
        if result.returncode not in (0, 1):
            raise VcsError(f"`git diff --cached` failed: {result.stderr.strip()}", ["git", "diff"], result.stderr)
        return result.returncode == 1

    def commit(self, repo_path: Path, message: str) -> str:
        identity: list[str] = []
        has_name = self._run(repo_path, "config", "user.name", check=False).returncode == 0
        has_email = self._run(repo_path, "config", "user.email", check=False).returncode == 0
        if not (has_name and has_email):
            identity = ["-c", f"user.name={_FALLBACK_NAME}", "-c", f"user.email={_FALLBACK_EMAIL}"]

        # Repository hooks do not apply to the generated data branch.
        self._run(repo_path, *identity, "commit", "--no-verify", "-q", "-m", message)
        return self._run(repo_path, "rev-parse", "HEAD").stdout.strip()

    def push(self, repo_path: Path, remote: str, branch: str, force: bool = False) -> PushResult:
        args = ["push", *(["--force"] if force else []), remote, branch]
        result = self._run(repo_path, *args, check=False)
        if "Everything up-to-date" in result.stderr:
            return PushResult.NOTHING_TO_PUSH
        if result.returncode != 0:
            raise VcsError(
                f"Failed to push {branch} to {remote}: {result.stderr.strip()}", ["git", *args], result.stderr
            )
        return PushResult.OK

    def revision_info(self, repo_path: Path, ref: str | None = None) -> Revision:
        out = self._run(repo_path, "log", "-1", f"--format={_LOG_FORMAT}", ref or "HEAD", "--").stdout
        try:
            sha, subject, committed, name, email = out.rstrip("\n").split("\x00")
        except ValueError:
            raise VcsError(f"Unexpected `git log` output for {ref or 'HEAD'}: {out!r}")

        name = name or "Unknown"
        email_or_none = email or None
        return Revision(
            id=sha,
            summary=subject,
            timestamp=datetime.fromtimestamp(int(committed), tz=timezone.utc),
            origin_url=commit_url_from_remote(self.remote_url(repo_path), sha),
            author=Author(
                name=name,
                email=email_or_none,
                handle=extract_github_username(email_or_none, name),
            ),
        )

    def remote_url(self, repo_path: Path, remote: str = "origin") -> str | None:
        result = self._run(repo_path, "remote", "get-url", remote, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None
