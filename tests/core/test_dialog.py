"""Tests for prompt state machines, driven by scripted keys."""

from stacktown.core.dialog import (
    ChoiceDialog,
    ConfirmDialog,
    DialogCommand,
    DialogStatus,
    run_dialog,
    update,
    view,
)


def test_confirm_dialog_accepts_highlighted_answer_with_enter_or_o() -> None:
    for key in ["enter", "o"]:
        state, command = update(ConfirmDialog(question="sure?", answer=True), key)

        assert state.status == DialogStatus.DONE
        assert state.answer is True
        assert command == DialogCommand.QUIT


def test_abort_keys_abort_every_dialog() -> None:
    for dialog in [
        ConfirmDialog(question="sure?"),
        ChoiceDialog(title="pick", entries=("a", "b")),
    ]:
        for key in ["ctrl-c", "esc", "q"]:
            state, command = update(dialog, key)
            assert state.status == DialogStatus.ABORTED
            assert command == DialogCommand.QUIT


def test_unknown_key_keeps_dialog_active() -> None:
    dialog = ChoiceDialog(title="t", entries=("x",))

    state, command = update(dialog, "z")

    assert state == dialog
    assert command == DialogCommand.NONE


def test_confirm_dialog_answers() -> None:
    yes, _ = update(ConfirmDialog(question="sure?"), "y")
    no, _ = update(ConfirmDialog(question="sure?", answer=True), "n")

    assert yes.status == DialogStatus.DONE and yes.answer
    assert no.status == DialogStatus.DONE and not no.answer


def test_confirm_dialog_toggle_then_accept() -> None:
    result = run_dialog(ConfirmDialog(question="sure?"), keys=["\x1b[C", "\r"])

    assert result.status == DialogStatus.DONE
    assert result.answer is True


def test_choice_dialog_moves_cursor_and_wraps() -> None:
    dialog = ChoiceDialog(title="parent", entries=("main", "a", "b"))

    result = run_dialog(dialog, keys=["\x1b[B", "j", "j", "\r"])

    assert result.status == DialogStatus.DONE
    assert result.selection == "main"


def test_choice_dialog_up_from_top_selects_last() -> None:
    result = run_dialog(ChoiceDialog(title="parent", entries=("main", "a", "b")), keys=["k", "o"])

    assert result.selection == "b"


def test_choice_dialog_without_entries_cannot_be_accepted() -> None:
    result = run_dialog(ChoiceDialog(title="parent", entries=()), keys=["\r"])

    assert result.status == DialogStatus.ABORTED
    assert result.selection is None


def test_ctrl_c_aborts_run_dialog() -> None:
    result = run_dialog(ConfirmDialog(question="sure?"), keys=["\x03"])

    assert result.status == DialogStatus.ABORTED


def test_running_out_of_keys_aborts() -> None:
    result = run_dialog(ChoiceDialog(title="parent", entries=("a",)), keys=["j"])

    assert result.status == DialogStatus.ABORTED


def test_finished_dialog_ignores_keys() -> None:
    done, _ = update(ConfirmDialog(question="sure?"), "enter")

    state, command = update(done, "q")

    assert state.status == DialogStatus.DONE
    assert command == DialogCommand.QUIT


def test_run_dialog_renders_each_active_frame() -> None:
    frames: list[str] = []

    run_dialog(
        ChoiceDialog(title="parent", entries=("a", "b")),
        keys=["j", "\r"],
        render=frames.append,
    )

    assert len(frames) == 2
    assert "parent" in frames[0]
    assert view(ChoiceDialog(title="x", entries=("a",), status=DialogStatus.DONE)) == ""
