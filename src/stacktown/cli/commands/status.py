import click
from rich.table import Table

from stacktown.cli.ensure import Ensure
from stacktown.cli.output import stderr_console, user_output
from stacktown.core.context import StacktownContext
from stacktown.core.opcodes import describe_opcode
from stacktown.core.program import Program


def _program_table(title: str, program: Program) -> Table:
    table = Table(title=title, show_header=True, header_style="bold", title_justify="left")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("step", no_wrap=True)
    for index, op in enumerate(program, start=1):
        table.add_row(str(index), describe_opcode(op))
    return table


@click.command("status")
@click.pass_obj
def status_cmd(ctx: StacktownContext) -> None:
    """Show the stored state of the last workflow."""
    Ensure.in_repo(ctx)
    with Ensure.no_errors():
        state = ctx.run_state_store.load()

    if state is None:
        user_output("No workflow in progress and nothing to undo.")
        return

    console = stderr_console()
    details = state.unfinished_details
    if details is None:
        user_output(
            f"The last `{state.command}` completed. "
            "Run `stacktown undo` to reverse it."
        )
        console.print(_program_table("undo steps", state.undo_program))
        return

    summary = Table(show_header=False, box=None)
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("command", state.command)
    summary.add_row("stopped on", f"[yellow]{details.end_branch}[/yellow]")
    if state.failed_opcode is not None:
        summary.add_row("failed step", f"[red]{describe_opcode(state.failed_opcode)}[/red]")
    summary.add_row("can skip", "yes" if details.can_skip else "no")
    console.print(summary)
    console.print(_program_table("remaining steps", state.remaining_program))
    console.print()
    user_output("Run `stacktown continue`, `stacktown skip` or `stacktown abort`.")
