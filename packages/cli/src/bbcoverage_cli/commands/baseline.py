"""baseline command — show recorded master coverage."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from bbcoverage_core.coverage import CoverageError, format_percent, read_master_coverage

console = Console()


@click.command("baseline")
@click.option("--git-url", default=None, help="Only show the baseline for this repository...")
@click.option("--branch", default=None, help="...and this branch.")
@click.pass_context
def baseline_cmd(ctx, git_url: str | None, branch: str | None):
    """Show master coverage baselines from the configured store."""
    store = ctx.obj["store"]

    if git_url or branch:
        if not (git_url and branch):
            raise click.UsageError("--git-url and --branch must be given together.")
        try:
            coverage = read_master_coverage(store, git_url, branch)
        except CoverageError as e:
            raise click.ClickException(str(e))
        console.print(f"Master coverage for {branch}: [bold]{format_percent(coverage)}[/bold]")
        return

    records = store.list_records()
    if not records:
        console.print("[yellow]No master coverage recorded.[/yellow]")
        return

    table = Table(title="Master Coverage", show_header=True, header_style="bold cyan")
    table.add_column("Repository#Branch")
    table.add_column("Coverage", justify="right", width=10)
    table.add_column("Recorded At", width=20)

    for r in records:
        table.add_row(r.key, format_percent(r.coverage), r.recorded_at[:19].replace("T", " "))

    console.print(table)
