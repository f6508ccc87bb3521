"""Commands that read and edit the per-repository configuration."""

from dataclasses import replace

import click
from rich.table import Table

from stacktown.cli.ensure import Ensure
from stacktown.cli.output import stderr_console, user_output
from stacktown.core.branch_names import normalize_branch_name
from stacktown.core.config_store import validate_sync_strategy
from stacktown.core.context import StacktownContext
from stacktown.core.dialog import ChoiceDialog, DialogStatus, run_dialog
from stacktown.core.run_state_store import ensure_no_unfinished_run


@click.group("config")
def config_group() -> None:
    """Show or edit branch configuration."""


@config_group.command("show")
@click.pass_obj
def show_cmd(ctx: StacktownContext) -> None:
    """Show settings and branch lineage."""
    repo = Ensure.in_repo(ctx)
    with Ensure.no_errors():
        config = ctx.config_store.load()
        lineage = config.build_lineage(ctx.git.get_trunk_branch(repo.root))

    settings = Table(show_header=False, box=None)
    settings.add_column(style="bold")
    settings.add_column()
    main_note = "" if config.main_branch else " [dim](detected)[/dim]"
    settings.add_row("main branch", lineage.main_branch + main_note)
    settings.add_row("perennial branches", ", ".join(config.perennial_branches) or "-")
    settings.add_row("offline", "yes" if config.offline else "no")
    settings.add_row("push new branches", "yes" if config.push_new_branches else "no")
    settings.add_row("sync strategy", config.sync_feature_strategy)

    branches = Table(show_header=True, header_style="bold")
    branches.add_column("branch", style="cyan", no_wrap=True)
    branches.add_column("parent", no_wrap=True)
    for branch in lineage.order_ancestors_first(lineage.branches()):
        branches.add_row(branch, lineage.parent(branch) or "-")

    console = stderr_console()
    console.print(settings)
    console.print()
    console.print(branches)


@config_group.command("set-main")
@click.argument("branch")
@click.pass_obj
def set_main_cmd(ctx: StacktownContext, branch: str) -> None:
    """Set the main branch."""
    Ensure.in_repo(ctx)
    with Ensure.no_errors():
        branch = normalize_branch_name(branch)
        config = ctx.config_store.load()
        ctx.config_store.save(replace(config, main_branch=branch))
    ctx.feedback.success(f"✓ main branch is now {branch}")


@config_group.command("add-perennial")
@click.argument("branch")
@click.pass_obj
def add_perennial_cmd(ctx: StacktownContext, branch: str) -> None:
    """Mark a branch as perennial (a root that is never shipped)."""
    Ensure.in_repo(ctx)
    with Ensure.no_errors():
        branch = normalize_branch_name(branch)
        config = ctx.config_store.load()
        if branch not in config.perennial_branches:
            lineage = dict(config.lineage)
            lineage.pop(branch, None)
            ctx.config_store.save(
                replace(
                    config,
                    perennial_branches=(*config.perennial_branches, branch),
                    lineage=lineage,
                )
            )
    ctx.feedback.success(f"✓ {branch} is perennial")


@config_group.command("set-sync-strategy")
@click.argument("strategy", type=click.Choice(["merge", "rebase"]))
@click.pass_obj
def set_sync_strategy_cmd(ctx: StacktownContext, strategy: str) -> None:
    """Choose whether sync merges or rebases feature branches."""
    Ensure.in_repo(ctx)
    with Ensure.no_errors():
        config = ctx.config_store.load()
        ctx.config_store.save(
            replace(config, sync_feature_strategy=validate_sync_strategy(strategy))
        )
    ctx.feedback.success(f"✓ sync strategy is now {strategy}")


@config_group.command("set-parent")
@click.argument("branch")
@click.argument("parent", required=False)
@click.pass_obj
def set_parent_cmd(ctx: StacktownContext, branch: str, parent: str | None) -> None:
    """Set the parent of BRANCH. Prompts for PARENT when omitted."""
    repo = Ensure.in_repo(ctx)
    with Ensure.no_errors():
        ensure_no_unfinished_run(ctx.run_state_store)
        branch = normalize_branch_name(branch)
        lineage = ctx.load_lineage()

        if parent is None:
            candidates = [
                b
                for b in ctx.git.list_local_branches(repo.root)
                if b != branch and b not in lineage.descendants(branch)
            ]
            choice = run_dialog(
                ChoiceDialog(title=f"Select the parent of {branch}", entries=tuple(candidates)),
                render=user_output,
            )
            if choice.status != DialogStatus.DONE or choice.selection is None:
                ctx.feedback.info("Aborted.")
                return
            parent = choice.selection

        parent = normalize_branch_name(parent)
        lineage.set_parent(branch, parent)
        ctx.config_store.save_lineage(lineage)
    ctx.feedback.success(f"✓ parent of {branch} is now {parent}")


@config_group.command("remove-parent")
@click.argument("branch")
@click.pass_obj
def remove_parent_cmd(ctx: StacktownContext, branch: str) -> None:
    """Forget the parent of BRANCH."""
    Ensure.in_repo(ctx)
    with Ensure.no_errors():
        ensure_no_unfinished_run(ctx.run_state_store)
        branch = normalize_branch_name(branch)
        lineage = ctx.load_lineage()
        Ensure.invariant(lineage.parent(branch) is not None, f"'{branch}' has no parent entry")
        lineage.remove_parent(branch)
        ctx.config_store.save_lineage(lineage)
    ctx.feedback.success(f"✓ removed parent of {branch}")
