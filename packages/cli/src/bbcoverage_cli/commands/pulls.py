"""pulls command — list the repository's open pull requests."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from bbcoverage_cli.auth import build_api_client
from bbcoverage_cli.commands.compare import require_credentials, resolve_repository

console = Console()


@click.command("pulls")
@click.option("--owner", default=None, help="Repository owner (workspace). Overrides config file.")
@click.option("--repo", default=None, help="Repository name. Overrides config file.")
@click.option("--git-url", default=None, envvar="GIT_URL", help="Clone URL used to detect owner/repo.")
@click.pass_context
def pulls_cmd(ctx, owner: str | None, repo: str | None, git_url: str | None):
    """List open pull requests and their target branches."""
    config = ctx.obj["config"]
    owner, repo = resolve_repository(config, owner, repo, git_url)
    client = build_api_client(config, require_credentials(config), owner, repo)

    pulls = client.list_pull_requests()
    if not pulls:
        console.print("[yellow]No open pull requests found.[/yellow]")
        return

    table = Table(title=f"Pull Requests: {owner}/{repo}", show_header=True, header_style="bold cyan")
    table.add_column("PR", style="bold", width=6)
    table.add_column("Title", max_width=50)
    table.add_column("Source")
    table.add_column("Destination")
    table.add_column("State", width=10)

    for pr in pulls:
        table.add_row(
            f"#{pr.id}",
            pr.title[:50],
            pr.source.branch,
            pr.destination.branch,
            pr.state or "",
        )

    console.print(table)
