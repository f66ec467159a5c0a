"""EagerForm CLI entry point."""

import logging

import click


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool):
    """EagerForm form validation engine CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
from eagerform.cli.check_cmd import check  # noqa: E402
from eagerform.cli.locales_cmd import locales  # noqa: E402

cli.add_command(check)
cli.add_command(locales)
