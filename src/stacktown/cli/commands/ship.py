import click

from stacktown.cli.workflow import run_command
from stacktown.core.context import StacktownContext
from stacktown.core.planners import plan_ship


@click.command("ship")
@click.argument("branch", required=False)
@click.option("-m", "--message", help="Commit message used when merging the pull request.")
@click.pass_obj
def ship_cmd(ctx: StacktownContext, branch: str | None, message: str | None) -> None:
    """Land a feature branch into the main branch.

    Merges the branch's pull request when one is open and a hosting
    connection is available; otherwise merges locally and pushes.
    """
    run_command(ctx, "ship", lambda inputs: plan_ship(inputs, branch, message))
