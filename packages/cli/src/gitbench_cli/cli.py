"""CLI entry point for gitbench.

Commands:
  run      — parse, compare, comment, save and publish in one step (CI use)
  store    — parse benchmark output and append it to the data file
  compare  — compare benchmark output against the data file
  history  — display recent runs from the data file or the publish branch
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from gitbench_cli.commands.compare import compare_cmd
from gitbench_cli.commands.history import history_cmd
from gitbench_cli.commands.run import run_cmd
from gitbench_cli.commands.store import store_cmd


def _version() -> str:
    try:
        return importlib.metadata.version("gitbench")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0+unknown"


def _setup_logging(verbose: bool) -> None:
    """Route log records through rich on stderr; stdout stays reserved for reports."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(console=Console(stderr=True), show_time=False, show_path=False))


@click.group()
@click.version_option(version=_version(), prog_name="gitbench")
@click.option(
    "--config",
    "config_path",
    default=".gitbench.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="GITBENCH_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Continuous benchmarking for cargo projects."""
    from gitbench_core.config import load_config
    from gitbench_core.errors import ConfigError

    _setup_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.UsageError(str(e))

    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = config


main.add_command(run_cmd)
main.add_command(store_cmd)
main.add_command(compare_cmd)
main.add_command(history_cmd)
