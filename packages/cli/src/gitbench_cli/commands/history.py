"""history command — display recent runs per suite."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gitbench_core.errors import NotFoundError
from gitbench_core.history import format_timestamp

from gitbench_cli.commands import common
from gitbench_cli.commands.common import reports_errors

console = Console()


def _format_results(run) -> str:
    return "\n".join(
        f"{escape(m.name)}: {m.value:.2f} {escape(m.unit)} ({escape(m.variance or '-')})" for m in run.measurements
    )


@click.command("history")
@click.option("--data-file", default=None, help="History file to read. [default: benchmark-data.json]")
@click.option("--branch", "from_branch", is_flag=True, help="Read the history published on the publish branch.")
@click.option("--name", "-n", default=None, help="Only show this suite.")
@click.option("--limit", "-l", default=10, show_default=True, help="Maximum number of runs to show per suite.")
@click.option("--repo-path", default=".", show_default=True, help="Repository holding the publish branch.")
@click.pass_context
@reports_errors
def history_cmd(ctx, data_file: str | None, from_branch: bool, name: str | None, limit: int, repo_path: str):
    """Show recent benchmark runs, newest first.

    Reads the local data file, or with --branch the history on the publish
    branch (gh-pages by default) without switching branches.
    """
    config, _ = common.command_config(ctx, {})

    if from_branch:
        store = common.build_branch_store(config, common.make_vcs(), Path(repo_path))
    else:
        store = common.build_store(config, data_file)
    history = store.load()

    if name is not None:
        if name not in history.entries:
            raise NotFoundError(f"Suite {name!r} not found")
        suites = [name]
    else:
        suites = history.suites()

    if not suites:
        console.print("[yellow]No benchmark history found.[/yellow]")
        return

    for suite in suites:
        runs = list(reversed(history.entries[suite]))[:limit]

        table = Table(title=f"Benchmark History — {suite}", show_header=True, header_style="bold cyan")
        table.add_column("Commit", style="bold", width=8)
        table.add_column("Message", max_width=40)
        table.add_column("Date", width=20)
        table.add_column("Results")

        for run in runs:
            table.add_row(
                run.revision.short_id,
                escape(run.revision.summary[:40]),
                format_timestamp(run.captured_at)[:19].replace("T", " "),
                _format_results(run),
            )

        console.print(table)
