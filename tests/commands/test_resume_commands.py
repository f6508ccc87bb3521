"""Tests for continue, skip, abort and undo run through the CLI."""

from click.testing import CliRunner

from stacktown.cli.cli import cli
from stacktown.core.config_store import FakeConfigStore, RepoConfig
from stacktown.core.context import StacktownContext
from stacktown.core.git.fake import FakeGit
from stacktown.core.run_state import UnfinishedDetails
from stacktown.core.run_state_store import FakeRunStateStore


def _stopped_sync(
    git: FakeGit, strategy: str = "merge"
) -> tuple[CliRunner, StacktownContext, FakeRunStateStore]:
    store = FakeRunStateStore()
    config = RepoConfig(
        main_branch="main",
        offline=True,
        sync_feature_strategy=strategy,
        lineage={"a": "main", "b": "main"},
    )
    ctx = StacktownContext.for_test(
        git=git, run_state_store=store, config_store=FakeConfigStore(config)
    )
    runner = CliRunner()
    result = runner.invoke(cli, ["sync", "a", "b"], obj=ctx)
    assert result.exit_code == 1
    return runner, ctx, store


def _conflicting_git() -> FakeGit:
    return FakeGit(
        branches={"main": "m0", "a": "a0", "b": "b0"},
        merge_conflicts={("a", "main")},
    )


def test_continue_before_resolving_fails() -> None:
    runner, ctx, store = _stopped_sync(_conflicting_git())

    result = runner.invoke(cli, ["continue"], obj=ctx)

    assert result.exit_code == 1
    assert "resolve the conflicts" in result.output
    assert store.has_unfinished_run()


def test_continue_after_resolving_finishes_workflow() -> None:
    git = _conflicting_git()
    runner, ctx, store = _stopped_sync(git)
    git.resolve_conflicts()

    result = runner.invoke(cli, ["continue"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert "commit --no-edit" in git.commands
    assert "merge main" in git.commands[git.commands.index("checkout b") :]
    assert git.current_branch == "main"
    assert not store.has_unfinished_run()


def test_skip_moves_on_to_next_branch() -> None:
    git = _conflicting_git()
    runner, ctx, store = _stopped_sync(git)

    result = runner.invoke(cli, ["skip"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert git.branches["a"] == "a0"
    assert git.branches["b"] != "b0"
    assert git.current_branch == "main"
    assert not store.has_unfinished_run()


def test_abort_restores_start_and_clears_record() -> None:
    git = _conflicting_git()
    runner, ctx, store = _stopped_sync(git)

    result = runner.invoke(cli, ["abort"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert git.branches == {"main": "m0", "a": "a0", "b": "b0"}
    assert git.current_branch == "main"
    assert git.operation_in_progress is None
    assert store.load() is None


def test_skip_then_undo_keeps_skipped_branch() -> None:
    git = _conflicting_git()
    runner, ctx, store = _stopped_sync(git)
    runner.invoke(cli, ["skip"], obj=ctx)

    result = runner.invoke(cli, ["undo"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert git.branches == {"main": "m0", "a": "a0", "b": "b0"}
    assert git.current_branch == "main"
    assert store.load() is None


def test_rebase_conflict_can_be_skipped_and_undone() -> None:
    git = FakeGit(
        branches={"main": "m0", "a": "a0", "b": "b0"},
        rebase_conflicts={("a", "main")},
    )
    runner, ctx, store = _stopped_sync(git, strategy="rebase")
    state = store.load()
    assert state is not None
    assert state.unfinished_details == UnfinishedDetails(end_branch="a", can_skip=True)

    skipped = runner.invoke(cli, ["skip"], obj=ctx)

    assert skipped.exit_code == 0, skipped.output
    assert "rebase --abort" in git.commands
    assert git.branches["a"] == "a0"
    assert git.branches["b"] != "b0"

    undone = runner.invoke(cli, ["undo"], obj=ctx)

    assert undone.exit_code == 0, undone.output
    assert git.branches == {"main": "m0", "a": "a0", "b": "b0"}
    assert git.current_branch == "main"


def test_undo_reverses_completed_workflow() -> None:
    git = FakeGit(branches={"main": "m0"})
    ctx = StacktownContext.for_test(
        git=git,
        config_store=FakeConfigStore(RepoConfig(main_branch="main", offline=True)),
    )
    runner = CliRunner()
    runner.invoke(cli, ["hack", "feature"], obj=ctx)

    result = runner.invoke(cli, ["undo"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert git.branches == {"main": "m0"}
    assert git.current_branch == "main"
    assert ctx.config_store.load().lineage == {}
    assert ctx.run_state_store.load() is None


def test_undo_refuses_unfinished_workflow() -> None:
    runner, ctx, store = _stopped_sync(_conflicting_git())

    result = runner.invoke(cli, ["undo"], obj=ctx)

    assert result.exit_code == 1
    assert "unfinished `sync` command" in result.output
    assert store.has_unfinished_run()


def test_resume_commands_without_record() -> None:
    ctx = StacktownContext.for_test()
    runner = CliRunner()

    for name in ["continue", "skip", "abort", "undo"]:
        result = runner.invoke(cli, [name], obj=ctx)

        assert result.exit_code == 1
        assert f"nothing to {name}" in result.output
