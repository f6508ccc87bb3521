"""Workflow executor: runs a program to completion or to a safe stopping point.

The executor is the only place that moves opcodes between the program queue,
the undo list and the run-state store:

    Running --all opcodes succeed--> Completed
    Running --conflict-------------> Stopped (run state persisted)
    Running --fatal failure--------> FatalFailure raised, nothing persisted

A stopped workflow is resumed through resume_continue(), resume_skip() or
resume_abort(). A completed workflow that retained its undo list can be
reversed once through resume_undo().
"""

import logging
from dataclasses import dataclass
from enum import Enum

from stacktown.core.errors import (
    CannotSkipError,
    ConflictFailure,
    FatalFailure,
    NothingToResumeError,
    UnfinishedRunError,
    ValidationError,
)
from stacktown.core.opcodes import (
    Checkout,
    Opcode,
    RunArgs,
    abort_steps,
    continue_steps,
    describe_opcode,
    has_captured_state,
    is_skippable,
    run_opcode,
    target_branch,
    undo_steps,
)
from stacktown.core.program import Program
from stacktown.core.run_state import RunState, UnfinishedDetails
from stacktown.core.run_state_store import RunStateStore
from stacktown.core.user_feedback import UserFeedback

logger = logging.getLogger(__name__)


class ExecutionStatus(Enum):
    COMPLETED = "completed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one executor run.

    Attributes:
        status: COMPLETED or STOPPED
        run_state: The persisted record when stopped, the retained finished
            record when the caller asked to keep the undo list, else None
    """

    status: ExecutionStatus
    run_state: RunState | None = None

    @property
    def stopped(self) -> bool:
        return self.status == ExecutionStatus.STOPPED


class Executor:
    """Drives programs against the repository described by `args`."""

    def __init__(self, args: RunArgs, store: RunStateStore, feedback: UserFeedback) -> None:
        self.args = args
        self.store = store
        self.feedback = feedback

    def run(
        self,
        program: Program,
        *,
        command: str,
        undo_program: Program | None = None,
        retain_undo: bool = False,
    ) -> ExecutionResult:
        """Run `program` until it is empty or an opcode conflicts.

        Args:
            program: Opcodes to execute, front first
            command: Name of the originating command, stored in the run state
            undo_program: Undo list carried over from an earlier run of the
                same workflow
            retain_undo: Keep the undo list in a finished run state on
                completion so that `undo` can reverse the workflow

        Raises:
            FatalFailure: If an opcode fails for a reason other than a conflict
        """
        undo = undo_program.copy() if undo_program is not None else Program()
        logger.debug("Running '%s' with %d opcodes", command, len(program))

        while not program.is_empty():
            op = program.pop()
            self.feedback.info(describe_opcode(op))
            try:
                run_opcode(op, self.args)
            except ConflictFailure as failure:
                return self._stop(command, op, program, undo, failure)
            undo.prepend_all(undo_steps(op))

        return self._complete(command, undo, retain_undo)

    def resume_continue(self) -> ExecutionResult:
        """Finish the failed opcode and run the rest of the stopped workflow.

        Raises:
            NothingToResumeError: If no unfinished workflow exists
            ValidationError: If unresolved conflicts remain
        """
        state, _ = self._load_unfinished("continue")
        if self.args.git.has_conflicts(self.args.repo_root):
            raise ValidationError("you must resolve the conflicts before continuing")

        undo = state.undo_program.copy()
        program = Program()
        failed = state.failed_opcode
        if failed is not None:
            program.extend(continue_steps(failed))
            if has_captured_state(failed):
                undo.prepend_all(undo_steps(failed))
        program.extend(state.remaining_program)

        logger.debug("Continuing '%s'", state.command)
        return self.run(program, command=state.command, undo_program=undo, retain_undo=True)

    def resume_skip(self) -> ExecutionResult:
        """Drop the stopped branch and continue with the next one.

        Cancels the conflicting operation, reverts what the workflow already
        did on the stopped branch, and removes the remaining opcodes for that
        branch (everything up to the next checkout of another branch). The
        rollback itself is not undoable: a later `undo` leaves the skipped
        branch as it was before the workflow.

        Raises:
            NothingToResumeError: If no unfinished workflow exists
            CannotSkipError: If the stop does not allow skipping
            FatalFailure: If a rollback opcode fails
        """
        state, details = self._load_unfinished("skip")
        if not details.can_skip:
            raise CannotSkipError(details.end_branch)

        undo = state.undo_program.copy()
        rollback = Program()
        if state.failed_opcode is not None:
            rollback.extend(abort_steps(state.failed_opcode))
        while (entry := undo.peek()) is not None and not isinstance(entry, Checkout):
            rollback.append(undo.pop())

        remaining = state.remaining_program.copy()
        while (entry := remaining.peek()) is not None and not _leaves_branch(
            entry, details.end_branch
        ):
            logger.debug("Skipping '%s'", describe_opcode(entry))
            remaining.pop()

        logger.debug("Skipping branch '%s' of '%s'", details.end_branch, state.command)
        self._run_strict(rollback)
        return self.run(remaining, command=state.command, undo_program=undo, retain_undo=True)

    def resume_abort(self) -> ExecutionResult:
        """Cancel the stopped workflow and restore the state before it started.

        Any failure while aborting is fatal. The run state is deleted whether
        or not the rollback succeeded.

        Raises:
            NothingToResumeError: If no unfinished workflow exists
            FatalFailure: If a rollback opcode fails
        """
        state, _ = self._load_unfinished("abort")

        program = Program()
        failed = state.failed_opcode
        if failed is not None:
            program.extend(abort_steps(failed))
            if has_captured_state(failed):
                program.extend(undo_steps(failed))
        program.extend(state.undo_program)

        logger.debug("Aborting '%s' with %d rollback opcodes", state.command, len(program))
        try:
            self._run_strict(program)
        finally:
            self.store.delete()
        return ExecutionResult(status=ExecutionStatus.COMPLETED)

    def resume_undo(self) -> ExecutionResult:
        """Reverse the last completed workflow. Possible once per workflow.

        Raises:
            NothingToResumeError: If no completed workflow retained an undo list
            UnfinishedRunError: If the last workflow is still unfinished
            FatalFailure: If an undo opcode fails
        """
        state = self.store.load()
        if state is None:
            raise NothingToResumeError("undo")
        if state.is_unfinished:
            raise UnfinishedRunError(state.command)

        logger.debug("Undoing '%s' with %d opcodes", state.command, len(state.undo_program))
        try:
            self._run_strict(state.undo_program.copy())
        finally:
            self.store.delete()
        return ExecutionResult(status=ExecutionStatus.COMPLETED)

    def _run_strict(self, program: Program) -> None:
        """Run a rollback program where every failure, conflicts included, is fatal."""
        while not program.is_empty():
            op = program.pop()
            self.feedback.info(describe_opcode(op))
            try:
                run_opcode(op, self.args)
            except ConflictFailure as failure:
                raise FatalFailure(failure.opcode_description, failure.output) from failure

    def _stop(
        self,
        command: str,
        op: Opcode,
        remaining: Program,
        undo: Program,
        failure: ConflictFailure,
    ) -> ExecutionResult:
        end_branch = target_branch(op) or self.args.git.get_current_branch(self.args.repo_root)
        if end_branch is None:
            raise FatalFailure(failure.opcode_description, "cannot determine the current branch")
        can_skip = is_skippable(op) and not self.args.lineage.is_root(end_branch)

        state = RunState(
            command=command,
            remaining_program=remaining,
            undo_program=undo,
            failed_opcode=op,
            unfinished_details=UnfinishedDetails(end_branch=end_branch, can_skip=can_skip),
        )
        self.store.save(state)
        logger.debug(
            "Stopped '%s' on %s (can_skip=%s, %d remaining)",
            command,
            end_branch,
            can_skip,
            len(remaining),
        )
        return ExecutionResult(status=ExecutionStatus.STOPPED, run_state=state)

    def _complete(self, command: str, undo: Program, retain_undo: bool) -> ExecutionResult:
        if retain_undo and not undo.is_empty():
            state = RunState(command=command, undo_program=undo)
            self.store.save(state)
            logger.debug("Completed '%s', kept %d undo opcodes", command, len(undo))
            return ExecutionResult(status=ExecutionStatus.COMPLETED, run_state=state)

        self.store.delete()
        logger.debug("Completed '%s'", command)
        return ExecutionResult(status=ExecutionStatus.COMPLETED)

    def _load_unfinished(self, operation: str) -> tuple[RunState, UnfinishedDetails]:
        state = self.store.load()
        if state is None or state.unfinished_details is None:
            raise NothingToResumeError(operation)
        return state, state.unfinished_details


def _leaves_branch(op: Opcode, branch: str) -> bool:
    return isinstance(op, Checkout) and op.branch != branch
