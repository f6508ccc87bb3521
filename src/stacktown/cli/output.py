"""Output utilities for CLI commands with clear intent."""

from typing import Any

import click
from rich.console import Console


def user_output(message: Any = "", nl: bool = True) -> None:
    """Write a user-facing message to stderr.

    Messages meant for people (progress, errors, guidance) go to stderr so that
    stdout stays free for machine-readable output.
    """
    click.echo(message, nl=nl, err=True)


def stderr_console() -> Console:
    """Rich console bound to stderr, used for tables and panels."""
    return Console(stderr=True)
