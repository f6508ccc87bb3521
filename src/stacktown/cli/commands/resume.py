"""Commands that resolve the stored run state of an earlier workflow."""

import click

from stacktown.cli.workflow import resume
from stacktown.core.context import StacktownContext


@click.command("continue")
@click.pass_obj
def continue_cmd(ctx: StacktownContext) -> None:
    """Resume the stopped workflow after resolving conflicts."""
    resume(ctx, lambda executor: executor.resume_continue(), "continue")


@click.command("skip")
@click.pass_obj
def skip_cmd(ctx: StacktownContext) -> None:
    """Skip the branch the workflow stopped on and continue with the next one."""
    resume(ctx, lambda executor: executor.resume_skip(), "skip")


@click.command("abort")
@click.pass_obj
def abort_cmd(ctx: StacktownContext) -> None:
    """Cancel the stopped workflow and restore the state before it started."""
    resume(ctx, lambda executor: executor.resume_abort(), "abort")


@click.command("undo")
@click.pass_obj
def undo_cmd(ctx: StacktownContext) -> None:
    """Reverse the last completed workflow."""
    resume(ctx, lambda executor: executor.resume_undo(), "undo")
