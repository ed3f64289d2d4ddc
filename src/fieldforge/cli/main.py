"""fieldforge CLI entry point."""

import logging
import os

import click


@click.group()
@click.option(
    "--log-level",
    default=lambda: os.environ.get("FIELDFORGE_LOG_LEVEL", "WARNING"),
    show_default="WARNING or $FIELDFORGE_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity.",
)
def cli(log_level: str):
    """fieldforge: declarative form field validation CLI."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
from fieldforge.cli.check_cmd import check, functions  # noqa: E402

cli.add_command(check)
cli.add_command(functions)
