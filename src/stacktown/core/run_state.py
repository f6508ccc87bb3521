"""Run state: the persisted progress of one workflow invocation.

A run state is created when the executor stops on a conflict (unfinished) or
when a completed workflow keeps its undo list for a later `undo` (finished).
The serialized form carries a version marker; records from other versions are
rejected rather than partially interpreted.
"""

from dataclasses import dataclass, field
from typing import Any

from stacktown.core.errors import PersistenceError
from stacktown.core.opcodes import Opcode, opcode_from_dict, opcode_to_dict
from stacktown.core.program import Program

RUN_STATE_VERSION = 1


@dataclass(frozen=True)
class UnfinishedDetails:
    """Where an unfinished workflow stopped."""

    end_branch: str
    can_skip: bool


@dataclass
class RunState:
    """Persisted record of an interrupted or completed workflow.

    Attributes:
        command: Name of the command that started the workflow
        remaining_program: Opcodes not executed yet
        undo_program: Undo opcodes of executed steps, newest first
        failed_opcode: The opcode that stopped the run (None when finished)
        unfinished_details: Present iff the workflow is unfinished
    """

    command: str
    remaining_program: Program = field(default_factory=Program)
    undo_program: Program = field(default_factory=Program)
    failed_opcode: Opcode | None = None
    unfinished_details: UnfinishedDetails | None = None

    @property
    def is_unfinished(self) -> bool:
        return self.unfinished_details is not None

    def to_dict(self) -> dict[str, Any]:
        details = None
        if self.unfinished_details is not None:
            details = {
                "end_branch": self.unfinished_details.end_branch,
                "can_skip": self.unfinished_details.can_skip,
            }
        return {
            "version": RUN_STATE_VERSION,
            "command": self.command,
            "remaining_program": [opcode_to_dict(op) for op in self.remaining_program],
            "undo_program": [opcode_to_dict(op) for op in self.undo_program],
            "failed_opcode": (
                opcode_to_dict(self.failed_opcode) if self.failed_opcode is not None else None
            ),
            "is_unfinished": self.is_unfinished,
            "unfinished_details": details,
        }

    @staticmethod
    def from_dict(data: Any) -> "RunState":
        """Build a RunState from its serialized form. Unknown fields are ignored.

        Raises:
            PersistenceError: If the record has another version or is malformed
        """
        if not isinstance(data, dict):
            raise PersistenceError("run state record must be a JSON object")

        version = data.get("version")
        if version != RUN_STATE_VERSION:
            raise PersistenceError(
                f"unsupported run state version {version!r} (expected {RUN_STATE_VERSION})"
            )

        command = data.get("command")
        if not isinstance(command, str) or not command:
            raise PersistenceError("run state record has no command")

        is_unfinished = data.get("is_unfinished")
        if not isinstance(is_unfinished, bool):
            raise PersistenceError("run state field 'is_unfinished' must be a boolean")

        details: UnfinishedDetails | None = None
        raw_details = data.get("unfinished_details")
        if is_unfinished:
            if not isinstance(raw_details, dict):
                raise PersistenceError("unfinished run state has no 'unfinished_details'")
            end_branch = raw_details.get("end_branch")
            can_skip = raw_details.get("can_skip")
            if not isinstance(end_branch, str) or not isinstance(can_skip, bool):
                raise PersistenceError("malformed 'unfinished_details' in run state")
            details = UnfinishedDetails(end_branch=end_branch, can_skip=can_skip)
        elif raw_details is not None:
            raise PersistenceError("finished run state must not carry 'unfinished_details'")

        raw_failed = data.get("failed_opcode")
        failed = opcode_from_dict(raw_failed) if raw_failed is not None else None

        return RunState(
            command=command,
            remaining_program=_program_from_list(data.get("remaining_program"), "remaining"),
            undo_program=_program_from_list(data.get("undo_program"), "undo"),
            failed_opcode=failed,
            unfinished_details=details,
        )


def _program_from_list(raw: Any, name: str) -> Program:
    if not isinstance(raw, list):
        raise PersistenceError(f"run state field '{name}_program' must be a list")
    return Program(opcode_from_dict(entry) for entry in raw)
