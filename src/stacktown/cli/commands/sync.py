import click

from stacktown.cli.workflow import run_command
from stacktown.core.context import StacktownContext
from stacktown.core.planners import plan_sync


@click.command("sync")
@click.argument("branches", nargs=-1)
@click.option("-a", "--all", "all_branches", is_flag=True, help="Sync every known branch.")
@click.pass_obj
def sync_cmd(ctx: StacktownContext, branches: tuple[str, ...], all_branches: bool) -> None:
    """Update branches with their tracking branch and their parent.

    Syncs the current branch when no BRANCHES are given. Ancestors are synced
    first. Stops on conflicts; resolve them and run `stacktown continue`.
    """
    run_command(
        ctx,
        "sync",
        lambda inputs: plan_sync(inputs, list(branches), all_branches=all_branches),
    )
