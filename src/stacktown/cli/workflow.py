"""Shared glue between CLI commands, planners and the executor."""

from collections.abc import Callable

import click

from stacktown.cli.ensure import Ensure
from stacktown.cli.output import user_output
from stacktown.core.context import StacktownContext
from stacktown.core.errors import InternalError
from stacktown.core.executor import ExecutionResult, Executor
from stacktown.core.lineage import Lineage
from stacktown.core.planners import PlanInputs
from stacktown.core.program import Program


def plan_inputs(ctx: StacktownContext) -> PlanInputs:
    """Snapshot config and lineage for a planner."""
    repo = Ensure.in_repo(ctx)
    config = ctx.config_store.load()
    lineage = config.build_lineage(ctx.git.get_trunk_branch(repo.root))
    return PlanInputs(
        git=ctx.git,
        repo_root=repo.root,
        lineage=lineage,
        config=config,
        connector=None if config.offline else ctx.connector,
        store=ctx.run_state_store,
    )


def run_command(
    ctx: StacktownContext, command: str, planner: Callable[[PlanInputs], Program]
) -> None:
    """Plan and run a workflow, reporting the outcome.

    Raises:
        SystemExit: On planning errors, fatal failures or a conflict stop
    """
    with Ensure.no_errors():
        inputs = plan_inputs(ctx)
        program = planner(inputs)
        executor = ctx.executor(inputs.lineage)
        result = executor.run(program, command=command, retain_undo=True)
    report(ctx, command, result)


def resume(ctx: StacktownContext, action: Callable[[Executor], ExecutionResult], name: str) -> None:
    """Run one of continue/skip/abort/undo against the stored run state."""
    Ensure.in_repo(ctx)
    with Ensure.no_errors():
        lineage: Lineage = ctx.load_lineage()
        result = action(ctx.executor(lineage))
    report(ctx, name, result)


def report(ctx: StacktownContext, command: str, result: ExecutionResult) -> None:
    """Print the outcome of an executor run; exit 1 when it stopped on a conflict."""
    if not result.stopped:
        ctx.feedback.success(f"✓ {command} done")
        return

    state = result.run_state
    details = state.unfinished_details if state is not None else None
    if details is None:
        raise InternalError(f"`{command}` stopped without storing its run state")

    user_output()
    user_output(
        click.style("CONFLICT ", fg="red", bold=True)
        + f"while running `{command}` on branch {click.style(details.end_branch, fg='yellow')}"
    )
    user_output()
    user_output("To continue after having resolved conflicts, run `stacktown continue`.")
    user_output("To go back to where you started, run `stacktown abort`.")
    if details.can_skip:
        user_output("To continue by skipping the current branch, run `stacktown skip`.")
    raise SystemExit(1)
