"""compare command — compare benchmark output against the data file."""

from __future__ import annotations

import json

import click

from gitbench_core.compare import compare

from gitbench_cli.commands import common
from gitbench_cli.commands.common import reports_errors


def _text_report(report) -> str:
    lines = [report.short_summary()]
    for c in report.comparisons:
        indicator = "↑" if c.is_regression else "↓"
        lines.append(
            f"  {indicator} {c.name}: {c.previous_value:.2f} {c.unit} -> {c.current_value:.2f} {c.unit} "
            f"({c.percentage_change:+.1f}%)"
        )
    return "\n".join(lines)


@click.command("compare")
@click.option("--output-file", "-o", required=True, help="File containing `cargo bench` output.")
@click.option("--data-file", default=None, help="History file to compare against. [default: benchmark-data.json]")
@click.option("--name", "-n", default=None, help="Suite to compare against. [default: cargo]")
@click.option("--alert-threshold", default=None, help="Alert ratio, e.g. 200%, 150 or 1.5x. [default: 200%]")
@click.option("--fail-threshold", default=None, help="Fail ratio. [default: the alert threshold]")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["markdown", "json", "text"]),
    default="markdown",
    show_default=True,
)
@click.pass_context
@reports_errors
def compare_cmd(
    ctx,
    output_file: str,
    data_file: str | None,
    name: str | None,
    alert_threshold: str | None,
    fail_threshold: str | None,
    output_format: str,
):
    """Compare benchmark output against the newest stored run.

    Nothing is written. A missing data file means every benchmark is new.
    """
    config, thresholds = common.command_config(
        ctx,
        {
            "name": name,
            "alert_threshold": alert_threshold,
            "fail_threshold": fail_threshold,
        },
    )

    results = common.read_results(output_file)
    if results is None:
        return

    store = common.build_store(config, data_file)
    report = compare(results, store.load().latest_run(config["name"]), thresholds)

    if output_format == "json":
        click.echo(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    elif output_format == "markdown":
        click.echo(report.summary())
    else:
        click.echo(_text_report(report))
