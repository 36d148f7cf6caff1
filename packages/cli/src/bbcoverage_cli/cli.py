"""CLI entry point for bbcoverage.

Commands:
  record    — store this build's coverage as the master baseline
  compare   — compare a pull request's coverage with master and comment on it
  pulls     — list the repository's open pull requests
  baseline  — show recorded master coverage
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from bbcoverage_cli.commands.baseline import baseline_cmd
from bbcoverage_cli.commands.compare import compare_cmd
from bbcoverage_cli.commands.pulls import pulls_cmd
from bbcoverage_cli.commands.record import record_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .bbcoverage.yml settings.

    Store selection hierarchy:
      store: gist    → GistStore   (requires gist_id and github_token)
      store: memory  → MemoryStore (nothing persisted)
      (default)      → SQLiteStore (store_path or .bbcoverage.db)

    This factory lives in cli.py so neither bbcoverage_core nor
    bbcoverage_store know about the CLI config format.
    """
    from bbcoverage_store.sqlite import SQLiteStore

    store_type = config.get("store", "sqlite")

    if store_type == "gist":
        from bbcoverage_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            raise click.UsageError("The gist store requires gist_id in .bbcoverage.yml and GITHUB_TOKEN.")
        return GistStore(gist_id=gist_id, token=token)

    if store_type == "memory":
        from bbcoverage_store.memory import MemoryStore

        return MemoryStore()

    return SQLiteStore(db_path=config.get("store_path") or ".bbcoverage.db")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("bbcoverage"),
    prog_name="bbcoverage",
)
@click.option(
    "--config",
    "config_path",
    default=".bbcoverage.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="BBCOVERAGE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log request and response bodies.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Bitbucket pull request coverage status for CI builds."""
    from bbcoverage_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)
    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(record_cmd)
main.add_command(compare_cmd)
main.add_command(pulls_cmd)
main.add_command(baseline_cmd)
