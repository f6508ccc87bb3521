"""Abstract base class for hosting platform operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Proposal:
    """A pull/merge request on the hosting platform."""

    number: int
    branch: str
    target: str
    title: str
    url: str


class Connector(ABC):
    """Abstract interface for hosting platform operations.

    A connector is optional: when none is configured (or offline mode is on)
    the opcodes that need one do nothing.
    """

    @abstractmethod
    def find_proposal(self, branch: str, target: str) -> Proposal | None:
        """Find the open proposal merging `branch` into `target`.

        Returns:
            The proposal, or None if there is none
        """
        ...

    @abstractmethod
    def merge_proposal(self, number: int, message: str) -> str:
        """Squash-merge a proposal.

        Args:
            number: Proposal number
            message: Commit message for the squash commit

        Returns:
            SHA of the merge commit

        Raises:
            RuntimeError: If the platform rejects the merge
        """
        ...

    @abstractmethod
    def update_proposal_target(self, number: int, target: str) -> None:
        """Change the target branch of a proposal.

        Raises:
            RuntimeError: If the platform rejects the update
        """
        ...
