"""Benchmark entity types.

Measurements, revisions and runs are immutable once produced: the parser
creates measurements, the CLI attaches them to a revision as a Run, and a
``History`` object takes ownership of the Run when it is appended.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Measurement:
    """One named metric. Lower values are better by convention."""

    name: str  # hierarchical, e.g. "math::bench_add" or "crypto/aes"
    value: float
    unit: str
    variance: str | None = None  # free-form display string, e.g. "+/- 5"
    extra: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Author:
    name: str
    email: str | None = None
    handle: str | None = None  # GitHub username when it can be inferred


@dataclass(frozen=True)
class Revision:
    """The code state a set of measurements belongs to."""

    id: str
    summary: str  # first line of the commit message
    timestamp: datetime
    origin_url: str | None = None
    author: Author | None = None

    @property
    def short_id(self) -> str:
        return self.id[:7]


@dataclass(frozen=True)
class Run:
    """One measurement event for a single revision."""

    revision: Revision
    captured_at: datetime
    source: str  # producing tool, e.g. "cargo"
    measurements: tuple[Measurement, ...] = ()

    def __post_init__(self):
        # Accept any iterable but always store a tuple so the run stays immutable.
        if not isinstance(self.measurements, tuple):
            object.__setattr__(self, "measurements", tuple(self.measurements))
