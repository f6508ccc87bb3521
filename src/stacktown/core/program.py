"""Ordered, mutable queue of opcodes."""

from collections import deque
from collections.abc import Iterable, Iterator

from stacktown.core.opcodes import Opcode


class Program:
    """A workflow as a queue of opcodes.

    The executor pops from the front. Abort/continue/skip-derived opcodes are
    spliced in at the front; the undo list grows at the front as opcodes
    succeed, so reading it front-to-back reverses the run.
    """

    def __init__(self, opcodes: Iterable[Opcode] = ()) -> None:
        self._opcodes: deque[Opcode] = deque(opcodes)

    def __len__(self) -> int:
        return len(self._opcodes)

    def __iter__(self) -> Iterator[Opcode]:
        return iter(list(self._opcodes))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Program):
            return NotImplemented
        return list(self._opcodes) == list(other._opcodes)

    def __repr__(self) -> str:
        return f"Program({list(self._opcodes)!r})"

    def is_empty(self) -> bool:
        return not self._opcodes

    def peek(self) -> Opcode | None:
        """Return the front opcode without removing it."""
        if not self._opcodes:
            return None
        return self._opcodes[0]

    def pop(self) -> Opcode:
        """Remove and return the front opcode.

        Raises:
            IndexError: If the program is empty
        """
        return self._opcodes.popleft()

    def prepend(self, opcode: Opcode) -> None:
        self._opcodes.appendleft(opcode)

    def prepend_all(self, opcodes: Iterable[Opcode]) -> None:
        """Insert opcodes at the front, keeping their relative order."""
        for opcode in reversed(list(opcodes)):
            self._opcodes.appendleft(opcode)

    def append(self, opcode: Opcode) -> None:
        self._opcodes.append(opcode)

    def extend(self, opcodes: Iterable[Opcode]) -> None:
        self._opcodes.extend(opcodes)

    def to_list(self) -> list[Opcode]:
        return list(self._opcodes)

    def copy(self) -> "Program":
        return Program(self._opcodes)
