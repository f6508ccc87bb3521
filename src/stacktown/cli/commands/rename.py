import click

from stacktown.cli.workflow import run_command
from stacktown.core.context import StacktownContext
from stacktown.core.planners import plan_rename


@click.command("rename")
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def rename_cmd(ctx: StacktownContext, names: tuple[str, ...]) -> None:
    """Rename a feature branch.

    \b
    stacktown rename NEW        rename the current branch
    stacktown rename OLD NEW    rename OLD
    """
    if len(names) > 2:
        raise click.UsageError("expected NEW or OLD NEW")
    old, new = (None, names[0]) if len(names) == 1 else names
    run_command(ctx, "rename", lambda inputs: plan_rename(inputs, new, old))
