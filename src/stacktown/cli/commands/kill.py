import click

from stacktown.cli.output import user_output
from stacktown.cli.workflow import run_command
from stacktown.core.context import StacktownContext
from stacktown.core.dialog import ConfirmDialog, DialogStatus, run_dialog
from stacktown.core.planners import plan_kill


@click.command("kill")
@click.argument("branch", required=False)
@click.option("-f", "--force", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def kill_cmd(ctx: StacktownContext, branch: str | None, force: bool) -> None:
    """Delete a feature branch locally and on origin.

    Children of the deleted branch move to its parent.
    """
    if not force:
        name = branch or "the current branch"
        answer = run_dialog(
            ConfirmDialog(question=f"Delete {name} locally and on origin?"),
            render=user_output,
        )
        if answer.status != DialogStatus.DONE or not answer.answer:
            ctx.feedback.info("Aborted.")
            return

    run_command(ctx, "kill", lambda inputs: plan_kill(inputs, branch))
