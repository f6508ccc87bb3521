"""Interactive prompts modeled as pure state transitions.

A dialog is a frozen state value. `update(state, key)` returns the next state
and a command telling the driver what to do; nothing here touches a terminal.
`run_dialog()` is the only impure part: it feeds keys from `click.getchar` (or a
scripted list in tests) into `update` and renders each state.

Keys are normalized names: "enter", "esc", "ctrl-c", "up", "down", "left",
"right", or a single character.

    o / enter       accept
    q / esc / ctrl-c  abort
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, replace
from enum import Enum
from typing import TypeVar

import click


class DialogStatus(Enum):
    ACTIVE = "active"
    DONE = "done"
    ABORTED = "aborted"


class DialogCommand(Enum):
    NONE = "none"
    QUIT = "quit"


@dataclass(frozen=True)
class ConfirmDialog:
    """Yes/no question. `answer` holds the highlighted choice."""

    question: str
    answer: bool = False
    status: DialogStatus = DialogStatus.ACTIVE


@dataclass(frozen=True)
class ChoiceDialog:
    """Pick one entry from a list."""

    title: str
    entries: tuple[str, ...]
    cursor: int = 0
    status: DialogStatus = DialogStatus.ACTIVE

    @property
    def selection(self) -> str | None:
        if self.status != DialogStatus.DONE or not self.entries:
            return None
        return self.entries[self.cursor]


Dialog = ConfirmDialog | ChoiceDialog

D = TypeVar("D", bound=Dialog)

_ACCEPT_KEYS = frozenset({"enter", "o"})
_ABORT_KEYS = frozenset({"ctrl-c", "esc", "q"})

_RAW_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\x03": "ctrl-c",
    "\x1b": "esc",
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\xe0H": "up",
    "\xe0P": "down",
    "\xe0M": "right",
    "\xe0K": "left",
}


def normalize_key(raw: str) -> str:
    """Map a raw terminal key sequence to its key name."""
    return _RAW_KEYS.get(raw, raw)


def update(state: D, key: str) -> tuple[D, DialogCommand]:
    """Apply one key press to a dialog state.

    Keys are ignored once the dialog is no longer active.
    """
    if state.status != DialogStatus.ACTIVE:
        return state, DialogCommand.QUIT

    if key in _ABORT_KEYS:
        return replace(state, status=DialogStatus.ABORTED), DialogCommand.QUIT

    match state:
        case ConfirmDialog():
            if key == "y":
                return replace(state, answer=True, status=DialogStatus.DONE), DialogCommand.QUIT
            if key == "n":
                return replace(state, answer=False, status=DialogStatus.DONE), DialogCommand.QUIT
            if key in ("left", "right", "tab"):
                return replace(state, answer=not state.answer), DialogCommand.NONE

        case ChoiceDialog(entries=entries, cursor=cursor):
            if key in ("up", "k") and entries:
                return replace(state, cursor=(cursor - 1) % len(entries)), DialogCommand.NONE
            if key in ("down", "j") and entries:
                return replace(state, cursor=(cursor + 1) % len(entries)), DialogCommand.NONE
            if key in _ACCEPT_KEYS and not entries:
                return replace(state, status=DialogStatus.ABORTED), DialogCommand.QUIT

    if key in _ACCEPT_KEYS:
        return replace(state, status=DialogStatus.DONE), DialogCommand.QUIT

    return state, DialogCommand.NONE


def view(state: Dialog) -> str:
    """Render an active dialog as text; finished dialogs render empty."""
    if state.status != DialogStatus.ACTIVE:
        return ""

    match state:
        case ConfirmDialog(question=question, answer=answer):
            yes = click.style("yes", reverse=True) if answer else "yes"
            no = "no" if answer else click.style("no", reverse=True)
            body = f"{click.style(question, bold=True)}  {yes} / {no}"
            help_text = "y/n answer   ←/→ toggle   o/enter accept   q/esc/ctrl-c abort"
        case ChoiceDialog(title=title, entries=entries, cursor=cursor):
            lines = [click.style(title, bold=True)]
            for index, entry in enumerate(entries):
                marker = "> " if index == cursor else "  "
                lines.append(marker + (click.style(entry, fg="cyan") if index == cursor else entry))
            body = "\n".join(lines)
            help_text = "↑/↓ move   o/enter accept   q/esc/ctrl-c abort"

    return f"\n{body}\n\n  {click.style(help_text, dim=True)}"


def run_dialog(
    state: D,
    keys: Iterable[str] | None = None,
    render: Callable[[str], None] | None = None,
) -> D:
    """Drive a dialog until it quits.

    Args:
        state: Initial dialog state
        keys: Scripted raw keys; reads the terminal with click.getchar when None.
            Running out of scripted keys aborts the dialog.
        render: Receives each rendered frame; frames are dropped when None

    Returns:
        The final state, with status DONE or ABORTED
    """
    source = iter(keys) if keys is not None else _terminal_keys()

    while True:
        if render is not None:
            frame = view(state)
            if frame:
                render(frame)
        raw = next(source, None)
        if raw is None:
            return replace(state, status=DialogStatus.ABORTED)
        state, command = update(state, normalize_key(raw))
        if command == DialogCommand.QUIT:
            return state


def _terminal_keys() -> Iterator[str]:
    while True:
        try:
            key = click.getchar()
        except (KeyboardInterrupt, EOFError):
            key = ""
        if not key:
            # closed input behaves like ctrl-c
            yield "\x03"
            return
        yield key
