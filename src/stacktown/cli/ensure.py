"""CLI error handling utilities with styled output.

This module provides the Ensure class for asserting invariants in CLI commands
with consistent, user-friendly error messages. All errors use a red "Error:"
prefix for visual consistency.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, NoReturn

import click

from stacktown.cli.output import user_output
from stacktown.core.errors import StacktownError
from stacktown.core.repo_discovery import NoRepoSentinel, RepoContext

if TYPE_CHECKING:
    from stacktown.core.context import StacktownContext


class Ensure:
    """Helper class for asserting invariants with consistent error handling."""

    @staticmethod
    def fail(error_message: str) -> NoReturn:
        """Output a styled error and exit with code 1.

        Raises:
            SystemExit: Always (with exit code 1)
        """
        user_output(click.style("Error: ", fg="red") + error_message)
        raise SystemExit(1)

    @staticmethod
    def invariant(condition: bool, error_message: str) -> None:
        """Ensure condition is true, otherwise output styled error and exit.

        Raises:
            SystemExit: If condition is false (with exit code 1)
        """
        if not condition:
            Ensure.fail(error_message)

    @staticmethod
    def in_repo(ctx: "StacktownContext") -> RepoContext:
        """Ensure the command runs inside a git repository.

        Raises:
            SystemExit: If outside a repository (with exit code 1)
        """
        if isinstance(ctx.repo, NoRepoSentinel):
            Ensure.fail(f"{ctx.repo.message}. This command requires a git repository.")
        return ctx.repo

    @staticmethod
    @contextmanager
    def no_errors() -> Iterator[None]:
        """Report any StacktownError raised inside the block and exit with code 1.

        Example:
            >>> with Ensure.no_errors():
            ...     program = plan_sync(inputs)
        """
        try:
            yield
        except StacktownError as e:
            Ensure.fail(str(e))
