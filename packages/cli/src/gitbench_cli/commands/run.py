"""run command — the full CI workflow for one benchmark run."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from gitbench_core.alert import AlertConfig, format_workflow_commands, generate_alert_message, should_fail
from gitbench_core.compare import Report, compare
from gitbench_core.errors import GitBenchError, RemoteError
from gitbench_core.gh.commit_comment import CommitCommentService
from gitbench_store.noop import NoOpStore
from gitbench_store.publish import NO_CHANGES

from gitbench_cli.ci_env import CiEnvironment
from gitbench_cli.commands import common
from gitbench_cli.commands.common import console, reports_errors

logger = logging.getLogger(__name__)


def _post_comment(ci: CiEnvironment, sha: str, report: Report, alert_config: AlertConfig) -> None:
    """Comment on the commit. Failures are logged; they never fail the run."""
    if not ci.token or not ci.repository:
        logger.warning("Skipping commit comment: a GitHub token and GITHUB_REPOSITORY are both required.")
        return

    body = generate_alert_message(report, alert_config) if report.has_alerts() else None
    try:
        url = CommitCommentService(ci.repository, ci.token).post_comment(sha, body or report.summary())
    except RemoteError as e:
        logger.warning("Failed to create commit comment: %s", e)
        return
    console.print(f"Created comment: {url}")


@click.command("run")
@click.option("--output-file", "-o", required=True, help="File containing `cargo bench` output.")
@click.option("--name", "-n", default=None, help="Suite name to record the run under. [default: cargo]")
@click.option("--tool", default=None, help="Producing tool recorded with the run. [default: cargo]")
@click.option("--data-file", default=None, help="Local history file. [default: benchmark-data.json]")
@click.option("--external-data-json-path", default=None, help="Use this history file instead of --data-file.")
@click.option("--gh-pages-branch", default=None, help="Publish branch. [default: gh-pages]")
@click.option("--benchmark-data-dir-path", default=None, help="Directory on the publish branch. [default: dev/bench]")
@click.option("--remote", default=None, help="Remote to publish to. [default: origin]")
@click.option("--github-token", default=None, help="Token for commit comments (else GITHUB_TOKEN or gh CLI).")
@click.option("--git-ref", default=None, help="Revision the results belong to. [default: GITHUB_SHA or HEAD]")
@click.option("--repo-path", default=".", show_default=True, help="Repository to read revisions from and publish in.")
@click.option("--auto-push/--no-auto-push", default=None, help="Publish to the publish branch.")
@click.option("--comment-always/--no-comment-always", default=None, help="Always comment on the commit.")
@click.option("--comment-on-alert/--no-comment-on-alert", default=None, help="Comment when an alert fires.")
@click.option("--fail-on-alert/--no-fail-on-alert", default=None, help="Exit 1 when the fail threshold is crossed.")
@click.option("--save-data-file/--no-save-data-file", default=None, help="Append the run to the data file.")
@click.option("--alert-threshold", default=None, help="Alert ratio, e.g. 200%, 150 or 1.5x. [default: 200%]")
@click.option("--fail-threshold", default=None, help="Fail ratio. [default: the alert threshold]")
@click.option("--alert-comment-cc-users", default=None, help="Mentions appended to alert comments, e.g. '@alice'.")
@click.option("--max-items-in-chart", type=int, default=None, help="Keep at most this many runs per suite.")
@click.option("--skip-fetch-gh-pages/--no-skip-fetch-gh-pages", default=None, help="Do not fetch before publishing.")
@click.option("--dashboard-dir", default=None, help="Static dashboard files published next to the data.")
@click.pass_context
@reports_errors
def run_cmd(
    ctx,
    output_file: str,
    name: str | None,
    tool: str | None,
    data_file: str | None,
    external_data_json_path: str | None,
    gh_pages_branch: str | None,
    benchmark_data_dir_path: str | None,
    remote: str | None,
    github_token: str | None,
    git_ref: str | None,
    repo_path: str,
    auto_push: bool | None,
    comment_always: bool | None,
    comment_on_alert: bool | None,
    fail_on_alert: bool | None,
    save_data_file: bool | None,
    alert_threshold: str | None,
    fail_threshold: str | None,
    alert_comment_cc_users: str | None,
    max_items_in_chart: int | None,
    skip_fetch_gh_pages: bool | None,
    dashboard_dir: str | None,
):
    """Parse, compare, comment, save and publish a benchmark run.

    Compares against the newest stored run of the suite, prints the report,
    optionally comments on the commit, appends the run to the data file and,
    with --auto-push, merges it into the history on the publish branch.
    Exits 1 when --fail-on-alert is set and a benchmark crossed the fail
    threshold.

    \b
    Environment variables:
      GITHUB_TOKEN       token for commit comments (or use gh CLI)
      GITHUB_REPOSITORY  owner/name, used for comments and commit links
      GITHUB_SHA         default for --git-ref
      GITHUB_ACTIONS     "true" enables workflow annotations
    """
    config, thresholds = common.command_config(
        ctx,
        {
            "name": name,
            "tool": tool,
            "data_file": data_file,
            "external_data_json_path": external_data_json_path,
            "gh_pages_branch": gh_pages_branch,
            "benchmark_data_dir_path": benchmark_data_dir_path,
            "remote": remote,
            "auto_push": auto_push,
            "comment_always": comment_always,
            "comment_on_alert": comment_on_alert,
            "fail_on_alert": fail_on_alert,
            "save_data_file": save_data_file,
            "alert_threshold": alert_threshold,
            "fail_threshold": fail_threshold,
            "alert_comment_cc_users": alert_comment_cc_users,
            "max_items_in_chart": max_items_in_chart,
            "skip_fetch_gh_pages": skip_fetch_gh_pages,
            "dashboard_dir": dashboard_dir,
        },
    )

    results = common.read_results(output_file)
    if results is None:
        return

    ci = CiEnvironment.from_env(token=github_token)
    if ci.is_actions:
        logger.debug("Running in GitHub Actions.")

    suite = config["name"]
    repo = Path(repo_path)
    vcs = common.make_vcs()
    run = common.build_run(vcs, repo, results, config["tool"], git_ref or ci.sha, ci)

    data_store = common.build_store(config)
    branch_store = common.build_branch_store(config, vcs, repo, ci.repo_url) if config["auto_push"] else None

    previous = data_store.load().latest_run(suite)
    if previous is None and branch_store is not None:
        # Fresh CI checkouts have no local data file; the published history is the baseline.
        previous = branch_store.load().latest_run(suite)

    report = compare(results, previous, thresholds)
    click.echo(report.summary())
    if ci.is_actions:
        click.echo(format_workflow_commands(report), nl=False)

    alert_config = AlertConfig(
        fail_on_alert=bool(config["fail_on_alert"]),
        cc_users=config.get("alert_comment_cc_users"),
    )

    if config["comment_always"] or (config["comment_on_alert"] and report.has_alerts()):
        _post_comment(ci, run.revision.id, report, alert_config)

    store = data_store if config["save_data_file"] else NoOpStore()
    store.save(suite, run, common.max_items(config))
    if config["save_data_file"]:
        console.print(f"Saved benchmark data to {common.data_file_path(config)}")

    if branch_store is not None:
        branch = config["gh_pages_branch"]
        try:
            result = branch_store.save(suite, run, common.max_items(config))
        except GitBenchError as e:
            if alert_config.fail_on_alert:
                raise
            logger.warning("Failed to publish to %s: %s", branch, e)
        else:
            if result == NO_CHANGES:
                console.print(f"No changes to publish; {branch} is already up to date.")
            else:
                console.print(f"Published to {branch}: {result[:7]}")

    if should_fail(report, alert_config):
        console.print("[bold red]Benchmark alert triggered, failing the workflow.[/bold red]")
        ctx.exit(1)
