"""Publishing: merge a run into the history kept on the publish branch.

The publish branch (``gh-pages`` by default) holds the long-lived history
that the dashboard reads. Publishing has to switch the caller's checkout to
that branch, so it runs as a forward-only sequence whose compensations are
guaranteed:

  1. capture the current branch            (restore target)
  2. stash uncommitted work, if any        → compensated by 9
  3. fetch the publish branch              (best effort)
  4. check out or create the branch        → compensated by 8
  5. merge the run into the stored history
  6. stage, commit only if something changed
  7. push (forced)
  8. check out the captured branch again   (always, once 2 is done)
  9. pop the stash from step 2             (always, once 8 succeeded)

A failure in 4-7 aborts the remaining forward steps, runs 8 and 9, and then
propagates. The caller never sees a failed publish that left it on the
publish branch or with its work stashed, unless step 8 itself fails. That
case is reported as an error naming the stash.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from gitbench_core.errors import ParseError, VcsError
from gitbench_core.history import History, load, serialize
from gitbench_core.models import Run

from gitbench_store.vcs.base import PushResult, RefScope, VcsProvider

logger = logging.getLogger(__name__)

NO_CHANGES = "no changes"
STASH_MESSAGE = "gitbench: temporary stash while publishing benchmark data"
_METADATA_DIR = ".git"


@dataclass
class PublishConfig:
    branch: str = "gh-pages"
    data_dir: str = "dev/bench"
    remote: str = "origin"
    skip_fetch: bool = False
    assets_dir: Path | None = None  # static dashboard files copied next to the data
    data_file_name: str = "data.json"
    commit_message: str = "Update benchmark data [gitbench]"
    repo_url: str | None = None

    @property
    def data_path(self) -> str:
        """Repository-relative path of the history artifact on the publish branch."""
        return f"{self.data_dir.strip('/')}/{self.data_file_name}"


def collect_assets(src: Path | None) -> list[tuple[Path, bytes]]:
    """Read every file under ``src`` into memory as (relative path, content)."""
    if src is None:
        return []
    src = Path(src)
    if not src.is_dir():
        logger.warning("Assets directory %s does not exist; publishing data only.", src)
        return []
    return [(p.relative_to(src), p.read_bytes()) for p in sorted(src.rglob("*")) if p.is_file()]


def write_assets(files: list[tuple[Path, bytes]], dest: Path) -> None:
    for relative, content in files:
        target = dest / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)


def clear_worktree(repo_path: Path) -> None:
    """Delete everything in the working tree except the repository metadata."""
    for entry in repo_path.iterdir():
        if entry.name == _METADATA_DIR:
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


class PublishCoordinator:
    """Relocates an updated history onto the publish branch of ``repo_path``.

    Not safe for concurrent use against the same repository. Concurrent
    publishers to the same remote branch resolve by force-push: the last
    pusher wins.
    """

    def __init__(self, vcs: VcsProvider, repo_path: Path, config: PublishConfig | None = None):
        self._vcs = vcs
        self._repo_path = Path(repo_path)
        self._config = config or PublishConfig()

    def publish(self, suite: str, run: Run, max_items: int | None = None) -> str:
        """Merge ``run`` into the branch's history and push it.

        Returns the new commit id, or NO_CHANGES when the staged tree was
        identical to the branch head and no commit was made.
        """
        repo = self._repo_path

        original = self._vcs.current_branch(repo)
        logger.debug("Publishing from %s; will return there afterwards.", original)

        # The checkout in step 4 replaces the working tree, so assets must be
        # read while the original branch is still checked out.
        assets = collect_assets(self._assets_dir())

        stashed = False
        if self._vcs.has_uncommitted_changes(repo):
            stashed = self._vcs.stash_push(repo, STASH_MESSAGE)
            if stashed:
                logger.info("Stashed uncommitted changes (%r).", STASH_MESSAGE)

        forward_error: Exception | None = None
        try:
            self._sync_remote()
            source_ref = self._acquire_branch()
            self._merge_artifact(source_ref, suite, run, max_items, assets)
            result = self._commit_if_changed()
            self._push()
        except Exception as e:
            forward_error = e
            raise
        finally:
            self._restore(original, stashed, forward_error)

        return result

    # ------------------------------------------------------------------ #
    # Forward steps                                                        #
    # ------------------------------------------------------------------ #

    def _assets_dir(self) -> Path | None:
        """The dashboard directory, relative paths taken from the repository root."""
        assets_dir = self._config.assets_dir
        if assets_dir is None:
            return None
        return assets_dir if Path(assets_dir).is_absolute() else self._repo_path / assets_dir

    def _sync_remote(self) -> None:
        cfg = self._config
        if cfg.skip_fetch:
            logger.debug("Skipping fetch of %s/%s.", cfg.remote, cfg.branch)
            return
        try:
            self._vcs.fetch(self._repo_path, cfg.remote, cfg.branch)
        except VcsError as e:
            # Advisory only: first publish, offline runner, or no remote at all.
            logger.warning("Could not fetch %s/%s, continuing with local state: %s", cfg.remote, cfg.branch, e)

    def _acquire_branch(self) -> str | None:
        """Switch to the publish branch and return the ref holding its current history.

        Returns None when the branch had to be created from scratch.
        """
        cfg = self._config
        repo = self._repo_path
        on_local = self._vcs.branch_exists(repo, cfg.branch, RefScope.LOCAL)
        on_remote = self._vcs.branch_exists(repo, cfg.branch, RefScope.REMOTE, cfg.remote)

        if on_remote:
            # Build on the remote head; the forced push must not drop commits
            # other publishers made since this clone last published.
            self._vcs.checkout(repo, cfg.branch, remote=cfg.remote, reset=True)
            return f"{cfg.remote}/{cfg.branch}"
        if on_local:
            self._vcs.checkout(repo, cfg.branch)
            return cfg.branch

        logger.info("Branch %s does not exist; creating it without history.", cfg.branch)
        self._vcs.create_orphan_branch(repo, cfg.branch)
        clear_worktree(repo)
        return None

    def _merge_artifact(
        self,
        source_ref: str | None,
        suite: str,
        run: Run,
        max_items: int | None,
        assets: list[tuple[Path, bytes]],
    ) -> None:
        cfg = self._config
        raw = self._vcs.read_file_at_ref(self._repo_path, source_ref, cfg.data_path) if source_ref else None
        try:
            history = load(raw)
        except ParseError as e:
            logger.warning("Existing %s on %s is corrupt, starting a fresh history: %s", cfg.data_path, source_ref, e)
            history = History()

        if raw is None:
            logger.info("No existing %s on %s (normal for a first publish).", cfg.data_path, cfg.branch)
        else:
            logger.info("Loaded %d existing run(s) from %s.", history.total_runs(), source_ref)

        history.append_run(suite, run, max_items)
        if cfg.repo_url:
            history.origin_url = cfg.repo_url

        data_dir = self._repo_path / cfg.data_dir
        data_dir.mkdir(parents=True, exist_ok=True)
        write_assets(assets, data_dir)
        (data_dir / cfg.data_file_name).write_bytes(serialize(history))

    def _commit_if_changed(self) -> str:
        repo = self._repo_path
        self._vcs.stage_all(repo, self._config.data_dir)
        if not self._vcs.diff_against_parent(repo):
            logger.info("Benchmark data on %s is already up to date.", self._config.branch)
            return NO_CHANGES
        commit_id = self._vcs.commit(repo, self._config.commit_message)
        logger.info("Committed benchmark data to %s: %s", self._config.branch, commit_id[:7])
        return commit_id

    def _push(self) -> None:
        cfg = self._config
        result = self._vcs.push(self._repo_path, cfg.remote, cfg.branch, force=True)
        if result is PushResult.NOTHING_TO_PUSH:
            logger.info("%s/%s already up to date.", cfg.remote, cfg.branch)
        else:
            logger.info("Pushed %s to %s.", cfg.branch, cfg.remote)

    # ------------------------------------------------------------------ #
    # Compensation                                                         #
    # ------------------------------------------------------------------ #

    def _restore(self, original: str, stashed: bool, forward_error: Exception | None = None) -> None:
        repo = self._repo_path
        try:
            # Forced: anything left uncommitted here was written by the
            # publisher itself; the caller's own work is in the stash.
            self._vcs.checkout(repo, original, force=True)
        except VcsError as e:
            if stashed:
                logger.error(
                    "Could not return to %s; your uncommitted changes are still stashed as %r. "
                    "Recover with `git checkout %s && git stash pop`.",
                    original,
                    STASH_MESSAGE,
                    original,
                )
            message = f"Could not restore {original} after publishing: {e}"
            if forward_error is not None:
                message += f" (publishing had already failed: {forward_error})"
            raise VcsError(message, e.command, e.stderr) from (forward_error or e)

        if stashed:
            try:
                self._vcs.stash_pop(repo)
            except Exception as e:
                logger.warning("Could not re-apply stashed changes (%r): %s", STASH_MESSAGE, e)
