"""Tests for the workflow executor and its continue/skip/abort/undo paths."""

from pathlib import Path

import pytest

from stacktown.core.errors import (
    CannotSkipError,
    FatalFailure,
    NothingToResumeError,
    UnfinishedRunError,
    ValidationError,
)
from stacktown.core.executor import ExecutionStatus, Executor
from stacktown.core.git.fake import FakeGit
from stacktown.core.lineage import Lineage
from stacktown.core.opcodes import (
    Checkout,
    Merge,
    Push,
    Rebase,
    RemoveParent,
    ResetToSha,
    RunArgs,
    SetParent,
)
from stacktown.core.program import Program
from stacktown.core.run_state import RunState, UnfinishedDetails
from stacktown.core.run_state_store import FakeRunStateStore, RealRunStateStore, RunStateStore
from tests.fakes.user_feedback import FakeUserFeedback


def _executor(
    git: FakeGit,
    lineage: Lineage | None = None,
    store: RunStateStore | None = None,
) -> tuple[Executor, RunStateStore, FakeUserFeedback]:
    feedback = FakeUserFeedback()
    if store is None:
        store = FakeRunStateStore()
    args = RunArgs(
        git=git,
        connector=None,
        lineage=lineage if lineage is not None else Lineage({"feature": "main"}),
        repo_root=Path("/repo"),
        save_lineage=lambda lineage: None,
    )
    return Executor(args, store, feedback), store, feedback


def _two_branch_git(**kwargs: object) -> FakeGit:
    return FakeGit(
        branches={"main": "m0", "a": "a0", "b": "b0"},
        remote_branches={"main": "m0", "a": "a0", "b": "b0"},
        **kwargs,  # type: ignore[arg-type]
    )


def _two_branch_lineage() -> Lineage:
    return Lineage({"a": "main", "b": "main"})


# ============================================================================
# run
# ============================================================================


def test_clean_program_runs_every_opcode_once_in_order() -> None:
    git = FakeGit(branches={"main": "m0", "feature": "f0"})
    executor, store, feedback = _executor(git)
    program = Program([Checkout(branch="feature"), Merge(branch="main"), Push(branch="feature")])

    result = executor.run(program, command="sync")

    assert result.status == ExecutionStatus.COMPLETED
    assert git.commands == ["checkout feature", "merge main", "push feature"]
    assert store.load() is None
    assert feedback.infos == [
        "git checkout feature",
        "git merge --no-edit main",
        "git push origin feature",
    ]


def test_clean_run_discards_previous_finished_record() -> None:
    git = FakeGit()
    store = FakeRunStateStore(
        RunState(command="hack", undo_program=Program([Checkout(branch="x")]))
    )
    executor, _, _ = _executor(git, store=store)

    executor.run(Program([Checkout(branch="main")]), command="sync")

    assert store.load() is None


def test_retained_undo_is_stored_as_finished_record() -> None:
    git = FakeGit(branches={"main": "m0", "feature": "f0"})
    executor, store, _ = _executor(git)

    result = executor.run(Program([Checkout(branch="feature")]), command="sync", retain_undo=True)

    stored = store.load()
    assert stored is not None
    assert not stored.is_unfinished
    assert stored.undo_program == Program([Checkout(branch="main")])
    assert result.run_state == stored


def test_conflict_persists_remaining_program_and_details() -> None:
    git = FakeGit(
        branches={"main": "m0", "feature": "f0"},
        merge_conflicts={("feature", "main")},
    )
    executor, store, _ = _executor(git)
    program = Program(
        [
            Checkout(branch="feature"),
            Merge(branch="main"),
            Push(branch="feature"),
            Checkout(branch="main"),
        ]
    )

    result = executor.run(program, command="sync")

    assert result.status == ExecutionStatus.STOPPED
    state = store.load()
    assert state is not None
    assert state.is_unfinished
    assert state.command == "sync"
    assert state.remaining_program == Program([Push(branch="feature"), Checkout(branch="main")])
    assert state.undo_program == Program([Checkout(branch="main")])
    assert state.failed_opcode == Merge(
        branch="main", previous_sha="f0", on_branch="feature", captured=True
    )
    assert state.unfinished_details == UnfinishedDetails(end_branch="feature", can_skip=True)
    assert "push feature" not in git.commands


def test_conflict_on_root_branch_cannot_be_skipped() -> None:
    git = FakeGit(
        branches={"main": "m0"},
        remote_branches={"main": "m1"},
        merge_conflicts={("main", "origin/main")},
    )
    executor, store, _ = _executor(git)

    executor.run(Program([Merge(branch="origin/main")]), command="sync")

    state = store.load()
    assert state is not None
    assert state.unfinished_details == UnfinishedDetails(end_branch="main", can_skip=False)


def test_fatal_failure_propagates_and_persists_nothing() -> None:
    git = FakeGit(branches={"main": "m0", "feature": "f0"}, push_failures={"feature"})
    executor, store, _ = _executor(git)
    program = Program([Push(branch="feature"), Checkout(branch="feature")])

    with pytest.raises(FatalFailure):
        executor.run(program, command="sync")

    assert store.load() is None
    assert git.commands == ["push feature"]


# ============================================================================
# Scenario A: conflicting merge, then abort
# ============================================================================


def test_abort_after_merge_conflict_restores_branch_and_clears_state() -> None:
    git = FakeGit(
        branches={"main": "m0", "feature": "f0"},
        current_branch="feature",
        merge_conflicts={("feature", "main")},
    )
    executor, store, _ = _executor(git)

    result = executor.run(Program([Merge(branch="main")]), command="sync")

    assert result.stopped
    state = store.load()
    assert state is not None
    assert state.unfinished_details == UnfinishedDetails(end_branch="feature", can_skip=True)

    executor.resume_abort()

    assert git.commands[-2:] == ["merge --abort", "reset --hard f0"]
    assert git.branches["feature"] == "f0"
    assert git.operation_in_progress is None
    assert store.load() is None


def test_abort_restores_every_touched_branch() -> None:
    git = _two_branch_git(merge_conflicts={("b", "main")})
    executor, store, _ = _executor(git, _two_branch_lineage())
    program = Program(
        [
            Checkout(branch="a"),
            Merge(branch="main"),
            Push(branch="a"),
            Checkout(branch="b"),
            Merge(branch="main"),
            Push(branch="b"),
            Checkout(branch="main"),
        ]
    )
    executor.run(program, command="sync")
    assert git.branches["a"] != "a0"
    assert git.remote_branches["a"] == git.branches["a"]

    executor.resume_abort()

    assert git.branches == {"main": "m0", "a": "a0", "b": "b0"}
    assert git.remote_branches == {"main": "m0", "a": "a0", "b": "b0"}
    assert git.current_branch == "main"
    assert store.load() is None


def test_abort_failure_is_fatal_and_still_deletes_state() -> None:
    git = FakeGit()
    store = FakeRunStateStore(
        RunState(
            command="sync",
            undo_program=Program([Checkout(branch="missing")]),
            unfinished_details=UnfinishedDetails(end_branch="main", can_skip=False),
        )
    )
    executor, _, _ = _executor(git, store=store)

    with pytest.raises(FatalFailure):
        executor.resume_abort()

    assert store.load() is None


# ============================================================================
# Scenario B: lineage changes undone after completion
# ============================================================================


def test_undo_restores_lineage_after_completed_workflow() -> None:
    lineage = Lineage({"f1": "main"})
    executor, store, _ = _executor(FakeGit(), lineage)
    program = Program([SetParent(branch="f1", parent="main"), RemoveParent(branch="f1")])

    executor.run(program, command="ship", retain_undo=True)
    assert lineage.parent("f1") is None

    executor.resume_undo()

    assert lineage.parent("f1") == "main"
    assert store.load() is None


def test_undo_is_possible_only_once() -> None:
    lineage = Lineage({"f1": "main"})
    executor, _, _ = _executor(FakeGit(), lineage)
    executor.run(Program([RemoveParent(branch="f1")]), command="kill", retain_undo=True)
    executor.resume_undo()

    with pytest.raises(NothingToResumeError, match="nothing to undo"):
        executor.resume_undo()


def test_undo_refuses_unfinished_workflow() -> None:
    store = FakeRunStateStore(
        RunState(
            command="sync",
            unfinished_details=UnfinishedDetails(end_branch="feature", can_skip=True),
        )
    )
    executor, _, _ = _executor(FakeGit(), store=store)

    with pytest.raises(UnfinishedRunError):
        executor.resume_undo()


# ============================================================================
# Scenario C and continue
# ============================================================================


@pytest.mark.parametrize("operation", ["continue", "skip", "abort", "undo"])
def test_resume_without_record_is_explicit_and_mutates_nothing(operation: str) -> None:
    git = FakeGit(branches={"main": "m0", "feature": "f0"})
    executor, store, _ = _executor(git)

    with pytest.raises(NothingToResumeError, match=f"nothing to {operation}"):
        getattr(executor, f"resume_{operation}")()

    assert git.commands == []
    assert store.load() is None


def test_continue_finishes_merge_and_runs_remaining_program() -> None:
    git = FakeGit(
        branches={"main": "m0", "feature": "f0"},
        merge_conflicts={("feature", "main")},
    )
    executor, store, _ = _executor(git)
    program = Program(
        [
            Checkout(branch="feature"),
            Merge(branch="main"),
            Push(branch="feature"),
            Checkout(branch="main"),
        ]
    )
    executor.run(program, command="sync")
    git.resolve_conflicts()

    result = executor.resume_continue()

    assert result.status == ExecutionStatus.COMPLETED
    assert git.commands[-3:] == ["commit --no-edit", "push feature", "checkout main"]
    assert git.remote_branches["feature"] == git.branches["feature"]
    stored = store.load()
    assert stored is not None
    assert not stored.is_unfinished
    assert ResetToSha(sha="f0") in stored.undo_program.to_list()


def test_continue_then_undo_reverts_the_merge() -> None:
    git = FakeGit(
        branches={"main": "m0", "feature": "f0"},
        merge_conflicts={("feature", "main")},
    )
    executor, _, _ = _executor(git)
    executor.run(
        Program([Checkout(branch="feature"), Merge(branch="main"), Checkout(branch="main")]),
        command="sync",
    )
    git.resolve_conflicts()
    executor.resume_continue()

    executor.resume_undo()

    assert git.branches["feature"] == "f0"
    assert git.current_branch == "main"


def test_continue_with_unresolved_conflicts_is_rejected() -> None:
    git = FakeGit(
        branches={"main": "m0", "feature": "f0"},
        current_branch="feature",
        merge_conflicts={("feature", "main")},
    )
    executor, store, _ = _executor(git)
    executor.run(Program([Merge(branch="main")]), command="sync")
    before = store.load()
    commands_before = list(git.commands)

    with pytest.raises(ValidationError, match="resolve the conflicts"):
        executor.resume_continue()

    assert store.load() == before
    assert git.commands == commands_before


def test_run_state_survives_a_new_executor(tmp_path: Path) -> None:
    git = FakeGit(
        branches={"main": "m0", "feature": "f0"},
        merge_conflicts={("feature", "main")},
    )
    first, _, _ = _executor(git, store=RealRunStateStore(tmp_path))
    first.run(
        Program([Checkout(branch="feature"), Merge(branch="main"), Checkout(branch="main")]),
        command="sync",
    )

    second, store, _ = _executor(git, store=RealRunStateStore(tmp_path))
    second.resume_abort()

    assert git.branches["feature"] == "f0"
    assert git.current_branch == "main"
    assert store.load() is None


# ============================================================================
# skip
# ============================================================================


def test_skip_refused_when_not_skippable_mutates_nothing() -> None:
    git = FakeGit(
        branches={"main": "m0"},
        remote_branches={"main": "m1"},
        merge_conflicts={("main", "origin/main")},
    )
    executor, store, _ = _executor(git)
    executor.run(Program([Merge(branch="origin/main")]), command="sync")
    before = store.load()
    commands_before = list(git.commands)

    with pytest.raises(CannotSkipError, match="cannot skip branch 'main'"):
        executor.resume_skip()

    assert store.load() == before
    assert git.commands == commands_before


def test_skip_drops_stopped_branch_and_continues_with_next() -> None:
    git = _two_branch_git(merge_conflicts={("a", "main")})
    executor, store, _ = _executor(git, _two_branch_lineage())
    program = Program(
        [
            Checkout(branch="a"),
            Merge(branch="origin/a"),
            Merge(branch="main"),
            Push(branch="a"),
            Checkout(branch="b"),
            Merge(branch="main"),
            Push(branch="b"),
            Checkout(branch="main"),
        ]
    )
    executor.run(program, command="sync")
    assert git.branches["a"] != "a0"

    result = executor.resume_skip()

    assert result.status == ExecutionStatus.COMPLETED
    assert git.branches["a"] == "a0"
    assert git.remote_branches["a"] == "a0"
    assert "push a" not in git.commands
    assert git.branches["b"] != "b0"
    assert git.remote_branches["b"] == git.branches["b"]
    assert git.current_branch == "main"
    stored = store.load()
    assert stored is not None
    assert not stored.is_unfinished


def test_skip_then_undo_leaves_skipped_branch_untouched() -> None:
    git = _two_branch_git(merge_conflicts={("a", "main")})
    executor, store, _ = _executor(git, _two_branch_lineage())
    program = Program(
        [
            Checkout(branch="a"),
            Merge(branch="origin/a"),
            Merge(branch="main"),
            Push(branch="a"),
            Checkout(branch="b"),
            Merge(branch="main"),
            Push(branch="b"),
            Checkout(branch="main"),
        ]
    )
    executor.run(program, command="sync")
    executor.resume_skip()
    stored = store.load()
    assert stored is not None
    resets = [op for op in stored.undo_program if isinstance(op, ResetToSha)]
    assert resets == [ResetToSha(sha="b0")]

    executor.resume_undo()

    assert git.branches == {"main": "m0", "a": "a0", "b": "b0"}
    assert git.remote_branches == {"main": "m0", "a": "a0", "b": "b0"}
    assert git.current_branch == "main"


# ============================================================================
# continue after the user finished the operation by hand
# ============================================================================


def test_continue_after_manual_merge_commit_runs_remaining_program() -> None:
    git = FakeGit(
        branches={"main": "m0", "feature": "f0"},
        merge_conflicts={("feature", "main")},
    )
    executor, _, _ = _executor(git)
    program = Program(
        [
            Checkout(branch="feature"),
            Merge(branch="main"),
            Push(branch="feature"),
            Checkout(branch="main"),
        ]
    )
    executor.run(program, command="sync")
    git.resolve_conflicts()
    git.finish_by_hand()

    result = executor.resume_continue()

    assert result.status == ExecutionStatus.COMPLETED
    assert "commit --no-edit" not in git.commands
    assert git.remote_branches["feature"] == git.branches["feature"]

    executor.resume_undo()

    assert git.branches["feature"] == "f0"
    assert git.current_branch == "main"


# ============================================================================
# rebase conflicts (HEAD is detached while the rebase is stopped)
# ============================================================================


def _rebase_program() -> Program:
    return Program(
        [
            Checkout(branch="feature"),
            Rebase(branch="main"),
            Push(branch="feature", force=True),
            Checkout(branch="main"),
        ]
    )


def _rebase_conflict_git() -> FakeGit:
    return FakeGit(
        branches={"main": "m0", "feature": "f0"},
        rebase_conflicts={("feature", "main")},
    )


def test_rebase_conflict_stops_on_the_rebased_branch() -> None:
    git = _rebase_conflict_git()
    executor, store, _ = _executor(git)

    result = executor.run(_rebase_program(), command="sync")

    assert result.stopped
    assert git.get_current_branch(Path("/repo")) is None
    state = store.load()
    assert state is not None
    assert state.unfinished_details == UnfinishedDetails(end_branch="feature", can_skip=True)
    assert state.failed_opcode == Rebase(
        branch="main", previous_sha="f0", on_branch="feature", captured=True
    )


def test_rebase_conflict_on_root_branch_stops_without_skip() -> None:
    git = FakeGit(
        branches={"main": "m0"},
        remote_branches={"main": "m1"},
        rebase_conflicts={("main", "origin/main")},
    )
    executor, store, _ = _executor(git)

    result = executor.run(Program([Rebase(branch="origin/main")]), command="sync")

    assert result.stopped
    state = store.load()
    assert state is not None
    assert state.unfinished_details == UnfinishedDetails(end_branch="main", can_skip=False)


def test_continue_finishes_rebase_then_undo_reverts_it() -> None:
    git = _rebase_conflict_git()
    executor, store, _ = _executor(git)
    executor.run(_rebase_program(), command="sync")
    git.resolve_conflicts()

    result = executor.resume_continue()

    assert result.status == ExecutionStatus.COMPLETED
    assert git.commands[-3:] == ["rebase --continue", "push feature --force", "checkout main"]
    assert git.branches["feature"] != "f0"

    executor.resume_undo()

    assert git.branches["feature"] == "f0"
    assert git.current_branch == "main"
    assert store.load() is None


def test_abort_after_rebase_conflict_restores_branch() -> None:
    git = _rebase_conflict_git()
    executor, store, _ = _executor(git)
    executor.run(_rebase_program(), command="sync")

    executor.resume_abort()

    assert git.commands[-3:] == ["rebase --abort", "reset --hard f0", "checkout main"]
    assert git.branches["feature"] == "f0"
    assert git.operation_in_progress is None
    assert git.current_branch == "main"
    assert store.load() is None


def test_skip_after_rebase_conflict_continues_with_next_branch() -> None:
    git = _two_branch_git(rebase_conflicts={("a", "main")})
    executor, store, _ = _executor(git, _two_branch_lineage())
    program = Program(
        [
            Checkout(branch="a"),
            Rebase(branch="main"),
            Push(branch="a", force=True),
            Checkout(branch="b"),
            Rebase(branch="main"),
            Push(branch="b", force=True),
            Checkout(branch="main"),
        ]
    )
    executor.run(program, command="sync")

    result = executor.resume_skip()

    assert result.status == ExecutionStatus.COMPLETED
    assert "rebase --abort" in git.commands
    assert "push a --force" not in git.commands
    assert git.branches["a"] == "a0"
    assert git.branches["b"] != "b0"
    assert git.remote_branches["b"] == git.branches["b"]
    assert git.current_branch == "main"
    stored = store.load()
    assert stored is not None
    assert not stored.is_unfinished
