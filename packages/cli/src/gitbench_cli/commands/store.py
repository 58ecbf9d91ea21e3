"""store command — append parsed benchmark output to the data file."""

from __future__ import annotations

from pathlib import Path

import click

from gitbench_cli.commands import common
from gitbench_cli.commands.common import console, reports_errors


@click.command("store")
@click.option("--output-file", "-o", required=True, help="File containing `cargo bench` output.")
@click.option("--name", "-n", default=None, help="Suite name to record the run under. [default: cargo]")
@click.option("--data-file", default=None, help="History file to append to. [default: benchmark-data.json]")
@click.option("--git-ref", default=None, help="Revision the results belong to. [default: HEAD]")
@click.option("--repo-path", default=".", show_default=True, help="Repository to read the revision from.")
@click.option("--max-items", type=int, default=None, help="Keep at most this many runs per suite.")
@click.pass_context
@reports_errors
def store_cmd(
    ctx,
    output_file: str,
    name: str | None,
    data_file: str | None,
    git_ref: str | None,
    repo_path: str,
    max_items: int | None,
):
    """Parse benchmark output and append it to the local data file."""
    config, _ = common.command_config(
        ctx, {"name": name, "max_items_in_chart": max_items}
    )

    results = common.read_results(output_file)
    if results is None:
        return

    run = common.build_run(common.make_vcs(), Path(repo_path), results, config["tool"], git_ref)
    store = common.build_store(config, data_file)
    store.save(config["name"], run, common.max_items(config))
    console.print(
        f"Stored {len(results)} result(s) for [bold]{config['name']}[/bold] at {run.revision.short_id}."
    )
