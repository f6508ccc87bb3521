"""Exception hierarchy for stacktown.

Errors fall into two groups:

- Planning errors (ValidationError and its subclasses, CyclicLineageError,
  PersistenceError) are raised before any opcode runs. Nothing has been mutated.
- Execution failures (ConflictFailure, FatalFailure) are raised by opcodes while
  a program runs. The executor turns a conflict into a persisted, resumable run
  state and lets fatal failures propagate.
"""


class StacktownError(Exception):
    """Base class for all errors raised by stacktown."""


class ValidationError(StacktownError):
    """A precondition of the requested workflow is not met."""


class NothingToResumeError(ValidationError):
    """continue/skip/abort/undo was invoked without a matching run state."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"nothing to {operation}")


class UnfinishedRunError(ValidationError):
    """A new workflow was requested while another one is still unfinished."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(
            f"You have an unfinished `{command}` command that ended on a conflict.\n"
            "Run `stacktown continue`, `stacktown skip` or `stacktown abort` first."
        )


class CannotSkipError(ValidationError):
    """skip was invoked for a stop that does not allow skipping."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f"cannot skip branch '{branch}' that resulted in conflicts")


class CyclicLineageError(StacktownError):
    """The branch lineage contains, or would contain, a cycle."""

    def __init__(self, branch: str, message: str | None = None) -> None:
        self.branch = branch
        super().__init__(message or f"cyclic lineage detected at branch '{branch}'")


class PersistenceError(StacktownError):
    """A stored record exists but cannot be read, parsed or written."""


class InternalError(StacktownError):
    """An internal consistency check failed."""


class OpcodeFailure(StacktownError):
    """An opcode could not complete.

    Attributes:
        opcode_description: Human-readable form of the failing action
        output: Combined stdout/stderr reported by the underlying tool
    """

    def __init__(self, opcode_description: str, output: str = "") -> None:
        self.opcode_description = opcode_description
        self.output = output
        message = f"{opcode_description} failed"
        if output:
            message += f"\n{output}"
        super().__init__(message)


class ConflictFailure(OpcodeFailure):
    """The underlying git command stopped on conflicting content."""


class FatalFailure(OpcodeFailure):
    """Any non-conflict failure (network, permissions, unexpected output)."""
