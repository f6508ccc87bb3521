"""User-facing diagnostic output with mode awareness."""

from abc import ABC, abstractmethod

import click

from stacktown.cli.output import user_output


class UserFeedback(ABC):
    """Provides user-facing diagnostic output that's mode-aware.

    Functions call ctx.feedback methods instead of threading a `quiet` flag
    through their signatures; the implementation decides what is shown.

    Two modes:
    - Interactive: Show all diagnostics (info, success)
    - Quiet: Suppress diagnostics; errors still reach stderr through Ensure

    Usage:
        ctx.feedback.info("git checkout feature")
        ...
        ctx.feedback.success("✓ sync done")
    """

    @abstractmethod
    def info(self, message: str) -> None:
        """Show informational message (suppressed in quiet mode)."""

    @abstractmethod
    def success(self, message: str) -> None:
        """Show success message (suppressed in quiet mode)."""


class InteractiveFeedback(UserFeedback):
    """Feedback shown in interactive mode (all messages)."""

    def info(self, message: str) -> None:
        """Show informational message."""
        user_output(message)

    def success(self, message: str) -> None:
        """Show success message in green."""
        user_output(click.style(message, fg="green"))


class SuppressedFeedback(UserFeedback):
    """Feedback for --quiet mode (diagnostics dropped)."""

    def info(self, message: str) -> None:
        pass

    def success(self, message: str) -> None:
        pass
