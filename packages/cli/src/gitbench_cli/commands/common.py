"""Helpers shared by the gitbench commands."""

from __future__ import annotations

import functools
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console

from gitbench_core.compare import Thresholds
from gitbench_core.config import load_config, validate_config
from gitbench_core.errors import ConfigError, GitBenchError, NoResultsError
from gitbench_core.models import Measurement, Run
from gitbench_core.parser import parse_file
from gitbench_store.base import BaseStore
from gitbench_store.branch import BranchStore
from gitbench_store.file import FileStore
from gitbench_store.publish import PublishConfig
from gitbench_store.vcs.base import VcsProvider

from gitbench_cli.ci_env import CiEnvironment

logger = logging.getLogger(__name__)
console = Console()


def reports_errors(f):
    """Turn gitbench errors into click errors: ConfigError is a usage error, the rest exit 1."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ConfigError as e:
            raise click.UsageError(str(e))
        except GitBenchError as e:
            raise click.ClickException(str(e))

    return wrapper


def command_config(ctx: click.Context, overrides: dict) -> tuple[dict, Thresholds]:
    """Reload the config file with this command's options layered on top, and validate it."""
    config = load_config(ctx.obj["config_path"], cli_overrides=overrides)
    thresholds = validate_config(config)
    return config, thresholds


def max_items(config: dict) -> int | None:
    value = config.get("max_items_in_chart")
    return int(value) if value is not None else None


def make_vcs() -> VcsProvider:
    from gitbench_store.vcs.git import GitProvider

    return GitProvider()


def data_file_path(config: dict) -> Path:
    return Path(config.get("external_data_json_path") or config["data_file"])


def build_store(config: dict, data_file: str | None = None) -> BaseStore:
    """The local history file: an explicit ``data_file`` wins over the configured paths."""
    return FileStore(Path(data_file) if data_file else data_file_path(config))


def publish_config(config: dict, repo_url: str | None = None) -> PublishConfig:
    dashboard = config.get("dashboard_dir")
    return PublishConfig(
        branch=config["gh_pages_branch"],
        data_dir=config["benchmark_data_dir_path"],
        remote=config["remote"],
        skip_fetch=bool(config["skip_fetch_gh_pages"]),
        assets_dir=Path(dashboard) if dashboard else None,
        repo_url=repo_url,
    )


def build_branch_store(config: dict, vcs: VcsProvider, repo_path: Path, repo_url: str | None = None) -> BranchStore:
    return BranchStore(vcs, repo_path, publish_config(config, repo_url))


def read_results(output_file: str) -> list[Measurement] | None:
    """Parse benchmark output; None when it holds no results (not an error in CI)."""
    try:
        results = parse_file(output_file)
    except NoResultsError:
        console.print("[yellow]No benchmark results found, skipping.[/yellow]")
        return None
    logger.info("Parsed %d benchmark result(s) from %s.", len(results), output_file)
    return results


def build_run(
    vcs: VcsProvider,
    repo_path: Path,
    results: list[Measurement],
    tool: str,
    ref: str | None = None,
    ci: CiEnvironment | None = None,
) -> Run:
    """Attach ``results`` to the revision at ``ref`` (HEAD when None)."""
    revision = vcs.revision_info(repo_path, ref)
    url = ci.commit_url(revision.id) if ci else None
    if url:
        revision = replace(revision, origin_url=url)
    logger.debug("Recording results for %s: %s", revision.short_id, revision.summary)
    return Run(
        revision=revision,
        captured_at=datetime.now(timezone.utc),
        source=tool,
        measurements=tuple(results),
    )
