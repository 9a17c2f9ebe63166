"""CLI entry point for prsift.

Commands:
  review   review a pull request and post the result as one GitHub review
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prsift_cli.commands.review import review_cmd

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("prsift"),
    prog_name="prsift",
)
@click.option(
    "--config",
    "config_path",
    default=".prsift.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRSIFT_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI code review for GitHub pull requests, placed where GitHub allows comments."""
    ctx.ensure_object(dict)
    _setup_logging(verbose)
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
