"""Alert rendering and the fail-the-build policy."""

from __future__ import annotations

from dataclasses import dataclass

from gitbench_core.compare import Report


@dataclass
class AlertConfig:
    fail_on_alert: bool = False
    cc_users: str | None = None  # e.g. "@alice,@bob", appended to alert comments


def generate_alert_message(report: Report, config: AlertConfig) -> str | None:
    """Build the Markdown body posted when at least one benchmark crossed the alert threshold."""
    if not report.alerts:
        return None

    lines = [
        "# ⚠️ Performance Alert\n",
        "The following benchmarks show significant performance regressions:\n",
        "| Benchmark | Previous | Current | Ratio | Change |",
        "|-----------|----------|---------|-------|--------|",
    ]
    for a in report.alerts:
        lines.append(
            f"| {a.name} | {a.previous_value:.2f} {a.unit} | {a.current_value:.2f} {a.unit} "
            f"| {a.ratio:.2f}x | +{a.percentage_change:.1f}% |"
        )
    lines.append("")

    if config.cc_users:
        lines.append(f"cc: {config.cc_users}")

    return "\n".join(lines) + "\n"


def should_fail(report: Report, config: AlertConfig) -> bool:
    return config.fail_on_alert and report.has_failures()


def format_workflow_commands(report: Report) -> str:
    """GitHub Actions annotations: a warning per alert, an error per failure."""
    out = []
    for a in report.alerts:
        out.append(
            f"::warning title=Performance Regression::Benchmark '{a.name}' regressed by "
            f"{a.percentage_change:.1f}% ({a.previous_value:.2f} {a.unit} → {a.current_value:.2f} {a.unit})"
        )
    for f in report.failures:
        out.append(
            f"::error title=Critical Performance Regression::Benchmark '{f.name}' regressed by "
            f"{f.percentage_change:.1f}%, exceeding threshold"
        )
    return "".join(line + "\n" for line in out)
