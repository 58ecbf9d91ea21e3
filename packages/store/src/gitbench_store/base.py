"""Abstract store interface.

The CLI depends on BaseStore rather than a concrete backend. A run is
recorded in a local data file, on the publish branch, or nowhere.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gitbench_core.history import History
    from gitbench_core.models import Run


class BaseStore(ABC):
    """Pluggable persistence layer for benchmark history."""

    @abstractmethod
    def load(self) -> History:
        """Return the stored history, or an empty History if nothing is stored yet."""

    @abstractmethod
    def save(self, suite: str, run: Run, max_items: int | None = None) -> str | None:
        """Append ``run`` to ``suite`` and persist the result.

        Returns a backend-specific receipt (a commit id for branch-backed
        stores), or None when the backend has nothing to report.
        """
