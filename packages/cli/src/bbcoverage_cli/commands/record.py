"""record command — store a baseline build's coverage as master coverage."""

from __future__ import annotations

import os

import click
from rich.console import Console

from bbcoverage_core.coverage import CoverageError, format_percent, record_master_coverage

console = Console()


@click.command("record")
@click.option(
    "--result",
    required=True,
    envvar="BUILD_RESULT",
    help="Build result reported by the CI host. Only SUCCESS is recorded.",
)
@click.option("--git-url", required=True, envvar="GIT_URL", help="Clone URL of the repository.")
@click.option("--branch", required=True, envvar="GIT_BRANCH", help="Branch that was built.")
@click.pass_context
def record_cmd(ctx, result: str, git_url: str, branch: str):
    """Record master coverage for a repository branch.

    Reads the coverage percentage from the environment variable named by
    `coverage_env_key` (default: lineCoverage), e.g. lineCoverage=87.5.
    """
    config = ctx.obj["config"]
    store = ctx.obj["store"]

    try:
        coverage = record_master_coverage(
            result,
            dict(os.environ),
            git_url,
            branch,
            store,
            key=config.get("coverage_env_key") or "lineCoverage",
        )
    except CoverageError as e:
        raise click.ClickException(str(e))

    if coverage is None:
        console.print(f"[yellow]Build result is {result}; master coverage left unchanged.[/yellow]")
        return
    console.print(f"[green]Master coverage {format_percent(coverage)} recorded for {branch}.[/green]")
