"""Parser for ``cargo bench`` output.

Two formats are recognised:

libtest::

    test bench_name ... bench:       1,234 ns/iter (+/- 56)

Criterion, on one line or with the name on its own line when it is long::

    bench_name          time:   [1.2345 µs 1.2456 µs 1.2567 µs]

    a/very/long/benchmark/name
                            time:   [1.2345 µs 1.2456 µs 1.2567 µs]

Criterion times are normalized to nanoseconds; the middle estimate is the
recorded value and the low/high bounds go into ``variance`` and ``extra``.
"""

from __future__ import annotations

import re
from pathlib import Path

from gitbench_core.errors import NoResultsError, NotFoundError
from gitbench_core.models import Measurement

_LIBTEST_RE = re.compile(
    r"test\s+(\S+)\s+\.\.\.\s+bench:\s+([\d,]+(?:\.\d+)?)\s+(\w+/\w+)(?:\s+\(\+/-\s+([\d,]+(?:\.\d+)?)\))?"
)
_CRITERION_RE = re.compile(
    r"^(?:(\S+)\s+)?time:\s+\[([\d.]+)\s*(\S+)\s+([\d.]+)\s*(\S+)\s+([\d.]+)\s*(\S+)\]"
)

_NS_PER_UNIT = {
    "ps": 0.001,
    "ns": 1.0,
    "µs": 1_000.0,
    "μs": 1_000.0,  # Greek mu, emitted by some terminals
    "us": 1_000.0,
    "ms": 1_000_000.0,
    "s": 1_000_000_000.0,
}


def _normalize(value: float, unit: str) -> tuple[float, str]:
    factor = _NS_PER_UNIT.get(unit)
    if factor is None:
        return value, unit
    return value * factor, "ns"


def _parse_libtest(line: str) -> Measurement | None:
    match = _LIBTEST_RE.search(line)
    if not match:
        return None
    name, value, unit, spread = match.groups()
    return Measurement(
        name=name,
        value=float(value.replace(",", "")),
        unit=unit,
        variance=f"+/- {spread.replace(',', '')}" if spread else None,
    )


def _parse_criterion(line: str, pending_name: str | None) -> Measurement | None:
    match = _CRITERION_RE.match(line)
    if not match:
        return None
    name = match.group(1) or pending_name
    if not name:
        return None

    unit = match.group(5)
    value, norm_unit = _normalize(float(match.group(4)), unit)
    low, _ = _normalize(float(match.group(2)), match.group(3))
    high, _ = _normalize(float(match.group(6)), match.group(7))
    return Measurement(
        name=name,
        value=value,
        unit=norm_unit,
        variance=f"[{low:.4f} {norm_unit}, {high:.4f} {norm_unit}]",
        extra={"low": f"{low:.4f}", "high": f"{high:.4f}"},
    )


def parse(text: str) -> list[Measurement]:
    """Return every benchmark found in ``text``, first occurrence of a name wins."""
    results: list[Measurement] = []
    seen: set[str] = set()
    pending_name: str | None = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        result = _parse_libtest(line) or _parse_criterion(line, pending_name)
        if result is None:
            # A bare token line may be the name of a two-line Criterion entry.
            pending_name = line if " " not in line and "\t" not in line else None
            continue

        pending_name = None
        if result.name not in seen:
            seen.add(result.name)
            results.append(result)

    if not results:
        raise NoResultsError(
            "no results found in benchmark output. Make sure you are running `cargo bench` "
            "and capturing its stdout."
        )
    return results


def parse_file(path: str | Path) -> list[Measurement]:
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError as e:
        raise NotFoundError(f"benchmark output file not found: {path}") from e
    return parse(text)
