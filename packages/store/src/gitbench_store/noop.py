"""No-op store — used when saving the data file is turned off.

Using a NoOpStore rather than None lets the CLI always call store.save()
without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitbench_core.history import History

from gitbench_store.base import BaseStore

if TYPE_CHECKING:
    from gitbench_core.models import Run


class NoOpStore(BaseStore):
    """Discards every run and always reads back an empty history."""

    def load(self) -> History:
        return History()

    def save(self, suite: str, run: Run, max_items: int | None = None) -> str | None:
        return None
