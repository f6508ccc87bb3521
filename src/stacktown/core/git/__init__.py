"""Git operations subpackage.

This subpackage provides the git backend capability used by opcodes: an
abstract interface with a subprocess-based implementation (`real`) and an
in-memory one for tests (`fake`).
"""

from stacktown.core.git.abc import CommandResult, Git, is_conflict_output

__all__ = [
    "CommandResult",
    "Git",
    "is_conflict_output",
]
