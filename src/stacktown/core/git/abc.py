"""High-level git operations interface.

This module provides a clean abstraction over git subprocess calls, making the
executor and planners testable without a real repository.

Architecture:
- Git: Abstract base class defining the interface
- RealGit: Production implementation using subprocess
- FakeGit: In-memory implementation for tests

Read queries return plain values. Mutating primitives return a CommandResult and
never raise on a non-zero exit code, so that opcodes can classify the failure
(conflict vs fatal) from the exit status and the tool's output.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import NamedTuple


class CommandResult(NamedTuple):
    """Result from running a git command.

    Attributes:
        success: True if command exited with code 0, False otherwise
        stdout: Standard output from the command
        stderr: Standard error from the command
    """

    success: bool
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Combined stdout and stderr, stripped."""
        return "\n".join(part.strip() for part in (self.stdout, self.stderr) if part.strip())


def is_conflict_output(result: CommandResult) -> bool:
    """Check whether a failed merge/rebase reported conflicting content."""
    text = f"{result.stdout}\n{result.stderr}"
    markers = ("CONFLICT", "Merge conflict", "could not apply", "fix conflicts")
    return any(marker in text for marker in markers)


class Git(ABC):
    """Abstract interface for git operations.

    All implementations (real and fake) must implement this interface.
    This interface contains ONLY runtime operations - no test setup methods.
    """

    # Read-only queries

    @abstractmethod
    def get_current_branch(self, cwd: Path) -> str | None:
        """Get the checked-out branch (None for detached HEAD, as during a rebase)."""
        ...

    @abstractmethod
    def get_current_sha(self, cwd: Path) -> str:
        """Get the commit SHA of HEAD.

        Raises:
            RuntimeError: If HEAD cannot be resolved
        """
        ...

    @abstractmethod
    def get_branch_head(self, repo_root: Path, branch: str) -> str | None:
        """Get the commit SHA at the head of a local or remote-qualified branch.

        Returns:
            Commit SHA as a string, or None if the branch doesn't exist.
        """
        ...

    @abstractmethod
    def get_trunk_branch(self, repo_root: Path) -> str:
        """Get the trunk branch name for the repository.

        Detects trunk by checking git's remote HEAD reference. Falls back to
        checking for existence of common trunk branch names if detection fails.
        """
        ...

    @abstractmethod
    def get_git_common_dir(self, cwd: Path) -> Path | None:
        """Get the common git directory (None outside a repository)."""
        ...

    @abstractmethod
    def has_uncommitted_changes(self, cwd: Path) -> bool:
        """Check if the working tree has uncommitted changes."""
        ...

    @abstractmethod
    def has_conflicts(self, cwd: Path) -> bool:
        """Check if the index contains unmerged paths."""
        ...

    @abstractmethod
    def has_merge_in_progress(self, cwd: Path) -> bool:
        """Check if a stopped merge still waits for its commit."""
        ...

    @abstractmethod
    def has_rebase_in_progress(self, cwd: Path) -> bool:
        """Check if a stopped rebase still waits to be continued or aborted."""
        ...

    @abstractmethod
    def list_local_branches(self, repo_root: Path) -> list[str]:
        """List all local branch names in the repository."""
        ...

    @abstractmethod
    def get_remote_url(self, repo_root: Path, remote: str) -> str | None:
        """Get the URL of a remote, or None if it is not configured."""
        ...

    # Mutating primitives

    @abstractmethod
    def fetch(self, cwd: Path) -> CommandResult:
        """Fetch all remotes with pruning."""
        ...

    @abstractmethod
    def checkout_branch(self, cwd: Path, branch: str) -> CommandResult:
        """Checkout an existing branch."""
        ...

    @abstractmethod
    def create_branch(self, cwd: Path, branch: str, start_point: str) -> CommandResult:
        """Create a new branch without checking it out."""
        ...

    @abstractmethod
    def merge_no_edit(self, cwd: Path, branch: str) -> CommandResult:
        """Merge a branch into the current branch with the default message."""
        ...

    @abstractmethod
    def rebase(self, cwd: Path, branch: str) -> CommandResult:
        """Rebase the current branch onto another branch."""
        ...

    @abstractmethod
    def abort_merge(self, cwd: Path) -> CommandResult:
        """Abort an in-progress merge."""
        ...

    @abstractmethod
    def continue_merge(self, cwd: Path) -> CommandResult:
        """Conclude an in-progress merge after conflicts were resolved."""
        ...

    @abstractmethod
    def abort_rebase(self, cwd: Path) -> CommandResult:
        """Abort an in-progress rebase."""
        ...

    @abstractmethod
    def continue_rebase(self, cwd: Path) -> CommandResult:
        """Continue an in-progress rebase after conflicts were resolved."""
        ...

    @abstractmethod
    def push_branch(
        self, cwd: Path, branch: str, *, force: bool, set_upstream: bool
    ) -> CommandResult:
        """Push a local branch to origin."""
        ...

    @abstractmethod
    def reset_remote_branch(self, cwd: Path, branch: str, sha: str) -> CommandResult:
        """Force the remote branch to point at `sha`, creating it if needed."""
        ...

    @abstractmethod
    def delete_local_branch(self, cwd: Path, branch: str, *, force: bool) -> CommandResult:
        """Delete a local branch."""
        ...

    @abstractmethod
    def delete_remote_branch(self, cwd: Path, branch: str) -> CommandResult:
        """Delete a branch on origin."""
        ...

    @abstractmethod
    def reset_hard(self, cwd: Path, sha: str) -> CommandResult:
        """Reset the current branch, index and working tree to `sha`."""
        ...

    @abstractmethod
    def add_remote(self, cwd: Path, name: str, url: str) -> CommandResult:
        """Add a remote."""
        ...

    @abstractmethod
    def remove_remote(self, cwd: Path, name: str) -> CommandResult:
        """Remove a remote."""
        ...
