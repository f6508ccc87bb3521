import click

from stacktown.cli.workflow import run_command
from stacktown.core.context import StacktownContext
from stacktown.core.planners import plan_hack


@click.command("hack")
@click.argument("branch")
@click.option("-p", "--parent", help="Branch to create the new branch from (default: main branch).")
@click.pass_obj
def hack_cmd(ctx: StacktownContext, branch: str, parent: str | None) -> None:
    """Create a new feature branch and check it out."""
    run_command(ctx, "hack", lambda inputs: plan_hack(inputs, branch, parent))
