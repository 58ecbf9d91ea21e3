"""Benchmark history: the long-lived, per-suite time series of runs.

The serialized form is a single JSON document shared with the dashboard
renderer, so its shape is a compatibility surface:

  {
    "last_update": "2024-05-01T12:00:00Z" | null,
    "repo_url": "https://github.com/owner/repo" | null,
    "entries": {"<suite>": [<run>, ...]}
  }

Runs are appended in chronological order and the newest run is always the
last element of its suite. An optional retention bound evicts the oldest
runs first.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from gitbench_core.errors import ParseError
from gitbench_core.models import Author, Measurement, Revision, Run

logger = logging.getLogger(__name__)

_TIMESTAMP_RE = re.compile(r"^(?P<base>[^.Zz+]+?)(?:\.(?P<frac>\d+))?(?P<tz>[Zz]|[+-]\d{2}:?\d{2})?$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render an RFC 3339 UTC timestamp with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Accepts a ``Z`` suffix and any number of fractional-second digits
    (nanosecond precision is truncated to microseconds). Timestamps without
    an offset are taken to be UTC.
    """
    match = _TIMESTAMP_RE.match(text.strip())
    if not match:
        raise ValueError(f"invalid timestamp: {text!r}")
    iso = match.group("base")
    frac = match.group("frac")
    if frac:
        iso += "." + frac[:6].ljust(6, "0")
    tz = match.group("tz")
    if tz is None or tz in ("Z", "z"):
        iso += "+00:00"
    else:
        iso += tz if ":" in tz else f"{tz[:3]}:{tz[3:]}"
    return datetime.fromisoformat(iso).astimezone(timezone.utc)


@dataclass
class History:
    """The persisted root: every suite's runs plus update bookkeeping."""

    last_updated: datetime | None = None
    origin_url: str | None = None
    entries: dict[str, list[Run]] = field(default_factory=dict)

    def append_run(self, suite: str, run: Run, max_items: int | None = None) -> None:
        """Append ``run`` to ``suite`` and evict the oldest runs beyond ``max_items``.

        ``last_updated`` is refreshed on every call, so "this history was
        touched" is always observable in the serialized document.
        """
        if max_items is not None and max_items < 1:
            raise ValueError(f"max_items must be at least 1, got {max_items}")

        runs = self.entries.setdefault(suite, [])
        if runs and run.captured_at < runs[-1].captured_at:
            logger.warning(
                "Run for %s in suite %r is older than the newest stored run (%s < %s); appending anyway.",
                run.revision.short_id,
                suite,
                format_timestamp(run.captured_at),
                format_timestamp(runs[-1].captured_at),
            )
        runs.append(run)

        if max_items is not None and len(runs) > max_items:
            del runs[: len(runs) - max_items]

        self.last_updated = _utcnow()

    def latest_run(self, suite: str) -> Run | None:
        runs = self.entries.get(suite)
        return runs[-1] if runs else None

    def previous_run(self, suite: str) -> Run | None:
        runs = self.entries.get(suite)
        if not runs or len(runs) < 2:
            return None
        return runs[-2]

    def suites(self) -> list[str]:
        return list(self.entries)

    def total_runs(self) -> int:
        return sum(len(runs) for runs in self.entries.values())


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize(history: History) -> bytes:
    """Encode ``history`` as deterministic, diff-friendly JSON."""
    doc = {
        "last_update": format_timestamp(history.last_updated) if history.last_updated else None,
        "repo_url": history.origin_url,
        "entries": {suite: [_run_to_dict(run) for run in runs] for suite, runs in history.entries.items()},
    }
    return (json.dumps(doc, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def load(raw: bytes | str | None) -> History:
    """Decode a serialized history.

    ``None`` means the source does not exist yet and yields an empty
    History. Anything that is present but not a valid document raises
    ParseError.
    """
    if raw is None:
        return History()

    try:
        doc = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"history is not valid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise ParseError(f"history root must be an object, got {type(doc).__name__}")

    try:
        last_update = doc.get("last_update")
        entries_doc = doc.get("entries")
        if entries_doc is None:
            entries_doc = {}
        if not isinstance(entries_doc, dict):
            raise TypeError("'entries' must be an object")
        return History(
            last_updated=parse_timestamp(last_update) if last_update else None,
            origin_url=doc.get("repo_url"),
            entries={suite: [_run_from_dict(r) for r in runs] for suite, runs in entries_doc.items()},
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ParseError(f"history document is malformed: {e!r}") from e


def _run_to_dict(run: Run) -> dict:
    return {
        "commit": _revision_to_dict(run.revision),
        "date": format_timestamp(run.captured_at),
        "tool": run.source,
        "benches": [_measurement_to_dict(m) for m in run.measurements],
    }


def _revision_to_dict(revision: Revision) -> dict:
    d: dict = {
        "id": revision.id,
        "message": revision.summary,
        "timestamp": format_timestamp(revision.timestamp),
    }
    if revision.origin_url is not None:
        d["url"] = revision.origin_url
    if revision.author is not None:
        author: dict = {"name": revision.author.name}
        if revision.author.email is not None:
            author["email"] = revision.author.email
        if revision.author.handle is not None:
            author["username"] = revision.author.handle
        d["author"] = author
    return d


def _measurement_to_dict(measurement: Measurement) -> dict:
    d: dict = {"name": measurement.name, "value": measurement.value, "unit": measurement.unit}
    if measurement.variance is not None:
        d["range"] = measurement.variance
    if measurement.extra:
        d["extra"] = dict(sorted(measurement.extra.items()))
    return d


def _run_from_dict(d: dict) -> Run:
    return Run(
        revision=_revision_from_dict(d["commit"]),
        captured_at=parse_timestamp(d["date"]),
        source=d["tool"],
        measurements=tuple(_measurement_from_dict(m) for m in d["benches"]),
    )


def _revision_from_dict(d: dict) -> Revision:
    author_doc = d.get("author")
    author = None
    if author_doc is not None:
        author = Author(
            name=author_doc["name"],
            email=author_doc.get("email"),
            handle=author_doc.get("username"),
        )
    return Revision(
        id=d["id"],
        summary=d["message"],
        timestamp=parse_timestamp(d["timestamp"]),
        origin_url=d.get("url"),
        author=author,
    )


def _measurement_from_dict(d: dict) -> Measurement:
    value = d["value"]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"benchmark {d.get('name')!r} has a non-numeric value: {value!r}")
    extra = d.get("extra") or {}
    return Measurement(
        name=d["name"],
        value=float(value),
        unit=d["unit"],
        variance=d.get("range"),
        extra={str(k): str(v) for k, v in extra.items()},
    )
