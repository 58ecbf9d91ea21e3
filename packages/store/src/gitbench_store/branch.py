"""BranchStore — the history as published on the dashboard branch."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from gitbench_core.errors import ParseError, VcsError
from gitbench_core.history import History, load

from gitbench_store.base import BaseStore
from gitbench_store.publish import PublishConfig, PublishCoordinator
from gitbench_store.vcs.base import RefScope, VcsProvider

if TYPE_CHECKING:
    from gitbench_core.models import Run

logger = logging.getLogger(__name__)


class BranchStore(BaseStore):
    """Reads the committed artifact on the publish branch; saves via PublishCoordinator.

    Reading never touches the working tree, so ``load`` is safe to call from
    any checkout. Saving switches branches temporarily and restores the
    caller's state afterwards.
    """

    def __init__(self, vcs: VcsProvider, repo_path: str | Path, config: PublishConfig | None = None):
        self._vcs = vcs
        self._repo_path = Path(repo_path)
        self._config = config or PublishConfig()

    def _source_ref(self) -> str | None:
        cfg = self._config
        if self._vcs.branch_exists(self._repo_path, cfg.branch, RefScope.REMOTE, cfg.remote):
            return f"{cfg.remote}/{cfg.branch}"
        if self._vcs.branch_exists(self._repo_path, cfg.branch, RefScope.LOCAL):
            return cfg.branch
        return None

    def load(self) -> History:
        cfg = self._config
        if not cfg.skip_fetch:
            try:
                self._vcs.fetch(self._repo_path, cfg.remote, cfg.branch)
            except VcsError as e:
                logger.warning("Could not fetch %s/%s: %s", cfg.remote, cfg.branch, e)

        ref = self._source_ref()
        if ref is None:
            logger.info("Branch %s does not exist yet; no published history.", cfg.branch)
            return History()

        raw = self._vcs.read_file_at_ref(self._repo_path, ref, cfg.data_path)
        if raw is None:
            logger.info("No %s on %s.", cfg.data_path, ref)
            return History()
        try:
            return load(raw)
        except ParseError as e:
            logger.warning("Published history on %s is corrupt, treating it as empty: %s", ref, e)
            return History()

    def save(self, suite: str, run: Run, max_items: int | None = None) -> str | None:
        return PublishCoordinator(self._vcs, self._repo_path, self._config).publish(suite, run, max_items)
