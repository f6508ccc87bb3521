"""Subprocess execution with rich error context.

Two flavours are provided:

- run_subprocess_with_context(): for queries that must succeed. Failures are
  re-raised as RuntimeError with the operation, command, exit code and output.
- run_command(): for mutating primitives. Never raises on a non-zero exit code;
  the caller classifies the CommandResult.
"""

import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from stacktown.core.git.abc import CommandResult


def run_subprocess_with_context(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
    check: bool = True,
    **kwargs: Any,
) -> subprocess.CompletedProcess[str]:
    """Execute subprocess with enriched error reporting for integration layer.

    Wraps subprocess.run() to catch CalledProcessError and re-raise as RuntimeError
    with operation context, stderr output, and command details.

    Args:
        cmd: Command and arguments to execute
        operation_context: Human-readable description of operation
        cwd: Working directory for command execution
        check: Whether to raise on non-zero exit (default: True)
        **kwargs: Additional arguments passed to subprocess.run()

    Returns:
        CompletedProcess instance from subprocess.run()

    Raises:
        RuntimeError: If command fails with enriched error context
    """
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=check,
            **kwargs,
        )
    except subprocess.CalledProcessError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Failed to {operation_context}"
        error_msg += f"\nCommand: {cmd_str}"
        error_msg += f"\nExit code: {e.returncode}"

        if e.stdout and e.stdout.strip():
            error_msg += f"\nstdout: {e.stdout.strip()}"
        if e.stderr and e.stderr.strip():
            error_msg += f"\nstderr: {e.stderr.strip()}"

        raise RuntimeError(error_msg) from e

    except FileNotFoundError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Command not found while trying to {operation_context}: {cmd[0]}"
        error_msg += f"\nFull command: {cmd_str}"
        raise RuntimeError(error_msg) from e


def run_command(cmd: Sequence[str], cwd: Path) -> CommandResult:
    """Run a command and report its outcome without raising on failure.

    A missing binary is reported as a failed CommandResult so that it is
    classified like any other fatal failure.
    """
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=False,
        )
    except FileNotFoundError:
        return CommandResult(success=False, stdout="", stderr=f"command not found: {cmd[0]}")

    return CommandResult(
        success=result.returncode == 0,
        stdout=result.stdout,
        stderr=result.stderr,
    )
