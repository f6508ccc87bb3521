import logging
import os

import click

from stacktown.cli.commands.config import config_group
from stacktown.cli.commands.hack import hack_cmd
from stacktown.cli.commands.kill import kill_cmd
from stacktown.cli.commands.rename import rename_cmd
from stacktown.cli.commands.resume import abort_cmd, continue_cmd, skip_cmd, undo_cmd
from stacktown.cli.commands.ship import ship_cmd
from stacktown.cli.commands.status import status_cmd
from stacktown.cli.commands.sync import sync_cmd
from stacktown.cli.ensure import Ensure
from stacktown.core.context import create_context

# Enable debug logging if STACKTOWN_DEBUG environment variable is set
if os.getenv("STACKTOWN_DEBUG"):
    logging.basicConfig(level=logging.DEBUG, format="[DEBUG %(name)s:%(lineno)d] %(message)s")

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="stacktown")
@click.option("-q", "--quiet", is_flag=True, help="Only print errors.")
@click.pass_context
def cli(ctx: click.Context, quiet: bool) -> None:
    """Branch workflows that survive merge conflicts."""
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        with Ensure.no_errors():
            ctx.obj = create_context(quiet=quiet)


cli.add_command(hack_cmd)
cli.add_command(sync_cmd)
cli.add_command(kill_cmd)
cli.add_command(ship_cmd)
cli.add_command(rename_cmd)
cli.add_command(continue_cmd)
cli.add_command(skip_cmd)
cli.add_command(abort_cmd)
cli.add_command(undo_cmd)
cli.add_command(status_cmd)
cli.add_command(config_group)


def main() -> None:
    """CLI entry point used by the `stacktown` console script."""
    cli()
