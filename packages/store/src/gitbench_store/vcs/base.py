"""Abstract Version-Control Provider.

The publish coordinator and BranchStore depend on this interface only, and
tests drive them with an in-memory fake. Every call names the repository
path explicitly; no provider relies on the current working directory.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gitbench_core.models import Revision


class RefScope(enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"


class PushResult(enum.Enum):
    OK = "ok"
    NOTHING_TO_PUSH = "nothing to push"


class VcsProvider(ABC):
    """The small set of repository operations gitbench needs.

    Implementations raise VcsError for any failed operation.
    """

    @abstractmethod
    def current_branch(self, repo_path: Path) -> str:
        """Return the checked-out branch name, or the commit id when HEAD is detached."""

    @abstractmethod
    def has_uncommitted_changes(self, repo_path: Path) -> bool:
        """True if the working tree or index differs from HEAD, untracked files included."""

    @abstractmethod
    def stash_push(self, repo_path: Path, message: str) -> bool:
        """Stash all uncommitted changes. Returns False if there was nothing to stash."""

    @abstractmethod
    def stash_pop(self, repo_path: Path) -> None:
        """Re-apply and drop the most recent stash entry."""

    @abstractmethod
    def fetch(self, repo_path: Path, remote: str, branch: str) -> None:
        """Update the remote-tracking ref for ``branch``."""

    @abstractmethod
    def branch_exists(self, repo_path: Path, name: str, scope: RefScope, remote: str = "origin") -> bool:
        pass

    @abstractmethod
    def checkout(
        self, repo_path: Path, name: str, remote: str | None = None, force: bool = False, reset: bool = False
    ) -> None:
        """Switch to ``name``.

        When only ``remote``/``name`` exists, a local tracking branch is
        created. With ``reset`` the local branch is (re)pointed at
        ``remote``/``name`` first, discarding local commits the remote does
        not have. ``force`` discards local modifications.
        """

    @abstractmethod
    def create_orphan_branch(self, repo_path: Path, name: str) -> None:
        """Switch to a new branch with no parent commits and an empty index."""

    @abstractmethod
    def read_file_at_ref(self, repo_path: Path, ref: str, path: str) -> bytes | None:
        """Return the committed contents of ``path`` at ``ref``, or None if absent."""

    @abstractmethod
    def stage_all(self, repo_path: Path, path: str) -> None:
        """Stage every addition, modification and deletion under ``path``."""

    @abstractmethod
    def diff_against_parent(self, repo_path: Path) -> bool:
        """True if the index differs from HEAD's tree (always true on an unborn branch with content)."""

    @abstractmethod
    def commit(self, repo_path: Path, message: str) -> str:
        """Commit the index and return the new commit id."""

    @abstractmethod
    def push(self, repo_path: Path, remote: str, branch: str, force: bool = False) -> PushResult:
        pass

    @abstractmethod
    def revision_info(self, repo_path: Path, ref: str | None = None) -> Revision:
        """Describe the commit at ``ref`` (HEAD when None)."""

    @abstractmethod
    def remote_url(self, repo_path: Path, remote: str = "origin") -> str | None:
        pass
