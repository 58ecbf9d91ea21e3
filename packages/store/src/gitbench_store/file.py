"""FileStore — history kept in a JSON file next to the code.

This is the store ``gitbench store`` and ``gitbench compare`` use by default
(``benchmark-data.json``). It is a plain read-modify-write of the whole
document; there is no locking, so two processes saving to the same file
at once can lose a run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from gitbench_core.history import History, load, serialize

from gitbench_store.base import BaseStore

if TYPE_CHECKING:
    from gitbench_core.models import Run

logger = logging.getLogger(__name__)


class FileStore(BaseStore):
    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> History:
        """Read the history file.

        A missing file is an empty history. A file that exists but cannot be
        decoded raises ParseError; overwriting it would destroy the data.
        """
        if not self._path.exists():
            logger.debug("%s does not exist yet; starting with an empty history.", self._path)
            return History()
        return load(self._path.read_bytes())

    def save(self, suite: str, run: Run, max_items: int | None = None) -> str | None:
        history = self.load()
        history.append_run(suite, run, max_items)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(serialize(history))
        logger.info("Saved %d run(s) for %r to %s.", len(history.entries[suite]), suite, self._path)
        return None
