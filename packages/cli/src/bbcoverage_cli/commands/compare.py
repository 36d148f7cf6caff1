"""compare command — publish a pull request's coverage against master."""

from __future__ import annotations

import os

import click
from rich.console import Console

from bbcoverage_cli.auth import build_api_client, repo_from_git_url, resolve_bitbucket_credentials
from bbcoverage_core.coverage import CoverageError, compare_coverage

console = Console()


def resolve_repository(config: dict, owner: str | None, repo: str | None, git_url: str | None) -> tuple[str, str]:
    """Pick repository coordinates: CLI options, then config file, then the clone URL."""
    owner = owner or config.get("owner")
    repo = repo or config.get("repository")
    if owner and repo:
        return owner, repo
    detected = repo_from_git_url(git_url)
    if detected:
        return owner or detected[0], repo or detected[1]
    raise click.UsageError(
        "Repository unknown. Pass --owner and --repo, set owner/repository in .bbcoverage.yml, "
        "or provide a bitbucket.org --git-url."
    )


def require_credentials(config: dict) -> tuple[str, str]:
    credentials = resolve_bitbucket_credentials(config)
    if credentials is None:
        raise click.UsageError(
            "No Bitbucket credentials found. Set BITBUCKET_USERNAME and BITBUCKET_APP_PASSWORD.\n"
            "Create an app password at https://bitbucket.org/account/settings/app-passwords/"
        )
    return credentials


@click.command("compare")
@click.option(
    "--pr",
    "pr_id",
    required=True,
    type=int,
    envvar=["BITBUCKET_PR_ID", "CHANGE_ID", "ghprbPullId"],
    help="Pull request id.",
)
@click.option("--git-url", required=True, envvar="GIT_URL", help="Clone URL of the repository.")
@click.option(
    "--target-branch",
    default=None,
    envvar="CHANGE_TARGET",
    help="Branch whose master coverage to compare with. Defaults to the PR's destination.",
)
@click.option("--build-url", default=None, envvar="BUILD_URL", help="Link target for the coverage badge.")
@click.option("--owner", default=None, help="Repository owner (workspace). Overrides config file.")
@click.option("--repo", default=None, help="Repository name. Overrides config file.")
@click.pass_context
def compare_cmd(
    ctx,
    pr_id: int,
    git_url: str,
    target_branch: str | None,
    build_url: str | None,
    owner: str | None,
    repo: str | None,
):
    """Compare pull request coverage with master and update the PR comment.

    Any earlier coverage comment posted by the same account is deleted and a
    fresh one is posted, so the pull request always shows one current report.

    \b
    Required environment variables:
      BITBUCKET_USERNAME       Bitbucket account (or use a git credential helper)
      BITBUCKET_APP_PASSWORD   App password with pull request read/write scope
      lineCoverage             Coverage percentage of this build, e.g. 82.4
    """
    config = ctx.obj["config"]
    store = ctx.obj["store"]

    owner, repo = resolve_repository(config, owner, repo, git_url)
    credentials = require_credentials(config)
    client = build_api_client(config, credentials, owner, repo)

    try:
        comparison = compare_coverage(
            client,
            store,
            pr_id,
            dict(os.environ),
            git_url,
            target_branch=target_branch,
            build_url=build_url,
            key=config.get("coverage_env_key") or "lineCoverage",
        )
    except CoverageError as e:
        raise click.ClickException(str(e))

    style = "green" if comparison.passed else "red"
    console.print(f"[{style}]PR #{pr_id}: coverage {comparison.summary()}[/{style}]")
