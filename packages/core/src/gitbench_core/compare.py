"""Comparing current measurements against the previous run.

Point values only: a ratio of ``current / previous`` above 1.0 is a
regression (higher is always worse). There is no statistical testing and no
lower-is-better inversion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from gitbench_core.errors import ConfigError
from gitbench_core.models import Measurement, Run

DEFAULT_ALERT_RATIO = 2.0  # "200%"
_IMPROVEMENT_PCT = -5.0


def parse_ratio(text: str) -> float:
    """Convert a threshold string to a ratio.

    "200%" → 2.0, "150" → 1.5 (bare numbers are percentages), "1.5x" → 1.5.
    """
    raw = str(text).strip()
    if not raw:
        raise ConfigError("Threshold cannot be empty")

    if raw.endswith("x"):
        number, scale = raw[:-1], 1.0
    else:
        number, scale = raw.removesuffix("%"), 100.0

    try:
        value = float(number.strip())
    except ValueError:
        raise ConfigError(f"Invalid threshold: {text!r}. Expected formats: '200%', '150', '1.5x'")

    if value <= 0:
        raise ConfigError(f"Threshold must be greater than 0, got {text!r}")
    return value / scale


@dataclass(frozen=True)
class Thresholds:
    """Alert and fail ratios. ``fail_ratio`` defaults to ``alert_ratio``."""

    alert_ratio: float = DEFAULT_ALERT_RATIO
    fail_ratio: float | None = None

    def __post_init__(self):
        if self.fail_ratio is None:
            object.__setattr__(self, "fail_ratio", self.alert_ratio)
        if self.fail_ratio < self.alert_ratio:
            raise ConfigError(
                f"fail-threshold ({self.fail_ratio:.0%}) must be >= alert-threshold ({self.alert_ratio:.0%})"
            )

    @classmethod
    def from_percentages(cls, alert: str, fail: str | None = None) -> Thresholds:
        alert_ratio = parse_ratio(alert)
        fail_ratio = parse_ratio(fail) if fail is not None else None
        return cls(alert_ratio=alert_ratio, fail_ratio=fail_ratio)


@dataclass(frozen=True)
class Comparison:
    name: str
    previous_value: float
    current_value: float
    ratio: float
    percentage_change: float
    is_regression: bool
    unit: str

    @classmethod
    def between(cls, previous: Measurement, current: Measurement) -> Comparison:
        # A zero baseline compares as "unchanged". This is the documented
        # policy, not a numerically meaningful ratio.
        ratio = current.value / previous.value if previous.value != 0 else 1.0
        return cls(
            name=current.name,
            previous_value=previous.value,
            current_value=current.value,
            ratio=ratio,
            percentage_change=(ratio - 1.0) * 100.0,
            is_regression=ratio > 1.0,
            unit=current.unit,
        )

    @property
    def is_improvement(self) -> bool:
        return not self.is_regression and self.percentage_change < _IMPROVEMENT_PCT

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "previous": self.previous_value,
            "current": self.current_value,
            "ratio": self.ratio,
            "percentage_change": self.percentage_change,
            "is_regression": self.is_regression,
            "unit": self.unit,
        }


@dataclass
class Report:
    comparisons: list[Comparison] = field(default_factory=list)
    alerts: list[Comparison] = field(default_factory=list)
    failures: list[Comparison] = field(default_factory=list)
    new_measurements: list[Measurement] = field(default_factory=list)
    removed_measurements: list[Measurement] = field(default_factory=list)

    def has_alerts(self) -> bool:
        return bool(self.alerts)

    def has_failures(self) -> bool:
        return bool(self.failures)

    def _is_empty(self) -> bool:
        return not self.comparisons and not self.new_measurements

    def summary(self) -> str:
        """Render the full Markdown report printed by the CLI and posted as a comment."""
        if self._is_empty():
            return "No benchmark comparisons available."

        lines = ["## Benchmark Comparison Report\n"]

        if self.comparisons:
            lines.append("### Comparisons\n")
            lines.append("| Benchmark | Previous | Current | Change |")
            lines.append("|-----------|----------|---------|--------|")
            for c in self.comparisons:
                if c.is_regression:
                    marker = "🔴"
                elif c.is_improvement:
                    marker = "🟢"
                else:
                    marker = "⚪"
                lines.append(
                    f"| {c.name} | {c.previous_value:.2f} {c.unit} | {c.current_value:.2f} {c.unit} "
                    f"| {marker} {c.percentage_change:+.2f}% |"
                )
            lines.append("")

        if self.new_measurements:
            lines.append("### New Benchmarks\n")
            for m in self.new_measurements:
                lines.append(f"- **{m.name}**: {m.value:.2f} {m.unit}")
            lines.append("")

        if self.removed_measurements:
            lines.append("### Removed Benchmarks\n")
            for m in self.removed_measurements:
                lines.append(f"- **{m.name}** (was {m.value:.2f} {m.unit})")
            lines.append("")

        if self.alerts:
            lines.append("### ⚠️ Performance Alerts\n")
            for a in self.alerts:
                lines.append(
                    f"- **{a.name}**: {a.percentage_change:.2f}% regression "
                    f"({a.previous_value:.2f} {a.unit} → {a.current_value:.2f} {a.unit})"
                )
            lines.append("")

        if self.failures:
            lines.append("### 🚨 Critical Regressions (Failing)\n")
            for f in self.failures:
                lines.append(f"- **{f.name}**: {f.percentage_change:.2f}% regression exceeds threshold")

        return "\n".join(lines)

    def short_summary(self) -> str:
        """One-line verdict, e.g. "🔴 1 regression(s), 🆕 2 new benchmark(s)"."""
        if self._is_empty():
            return "No benchmark data to compare."

        regressions = sum(1 for c in self.comparisons if c.is_regression)
        improvements = sum(1 for c in self.comparisons if c.is_improvement)

        parts = []
        if regressions:
            parts.append(f"🔴 {regressions} regression(s)")
        if improvements:
            parts.append(f"🟢 {improvements} improvement(s)")
        if self.new_measurements:
            parts.append(f"🆕 {len(self.new_measurements)} new benchmark(s)")
        return ", ".join(parts) if parts else "⚪ No significant changes"

    def to_dict(self) -> dict:
        def _measurement(m: Measurement) -> dict:
            return {"name": m.name, "value": m.value, "unit": m.unit, "range": m.variance}

        return {
            "comparisons": [c.to_dict() for c in self.comparisons],
            "alerts": [c.to_dict() for c in self.alerts],
            "failures": [c.to_dict() for c in self.failures],
            "new_benchmarks": [_measurement(m) for m in self.new_measurements],
            "removed_benchmarks": [_measurement(m) for m in self.removed_measurements],
            "has_alerts": self.has_alerts(),
            "has_failures": self.has_failures(),
        }


def compare(
    current: Iterable[Measurement],
    previous: Run | None,
    thresholds: Thresholds | None = None,
) -> Report:
    """Compare ``current`` measurements against the ``previous`` run.

    Output ordering follows the input sequences: comparisons and new
    measurements in current order, removed measurements in previous order.
    """
    thresholds = thresholds or Thresholds()
    current = list(current)
    report = Report()

    previous_by_name: dict[str, Measurement] = {}
    if previous is not None:
        for m in previous.measurements:
            previous_by_name.setdefault(m.name, m)

    for m in current:
        baseline = previous_by_name.get(m.name)
        if baseline is None:
            report.new_measurements.append(m)
            continue

        comparison = Comparison.between(baseline, m)
        report.comparisons.append(comparison)
        if comparison.ratio >= thresholds.alert_ratio:
            report.alerts.append(comparison)
        if comparison.ratio >= thresholds.fail_ratio:
            report.failures.append(comparison)

    current_names = {m.name for m in current}
    if previous is not None:
        report.removed_measurements = [m for m in previous.measurements if m.name not in current_names]

    return report
