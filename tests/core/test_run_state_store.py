"""Tests for run state serialization and the run state stores."""

import json
from pathlib import Path

import pytest

from stacktown.core.errors import PersistenceError, UnfinishedRunError
from stacktown.core.opcodes import Checkout, Merge, Push, ResetToSha, SetParent
from stacktown.core.program import Program
from stacktown.core.run_state import RUN_STATE_VERSION, RunState, UnfinishedDetails
from stacktown.core.run_state_store import (
    FakeRunStateStore,
    RealRunStateStore,
    ensure_no_unfinished_run,
)


def _unfinished_state() -> RunState:
    return RunState(
        command="sync",
        remaining_program=Program([Push(branch="feature"), Checkout(branch="main")]),
        undo_program=Program([ResetToSha(sha="abc"), Checkout(branch="main")]),
        failed_opcode=Merge(branch="main", previous_sha="f0", captured=True),
        unfinished_details=UnfinishedDetails(end_branch="feature", can_skip=True),
    )


def test_real_store_load_without_file_returns_none(tmp_path: Path) -> None:
    store = RealRunStateStore(tmp_path / "stacktown")

    assert store.load() is None
    assert not store.has_unfinished_run()


def test_real_store_round_trip(tmp_path: Path) -> None:
    store = RealRunStateStore(tmp_path / "stacktown")
    state = _unfinished_state()

    store.save(state)
    loaded = store.load()

    assert loaded == state
    assert store.has_unfinished_run()
    assert (tmp_path / "stacktown" / "runstate.json").exists()


def test_real_store_save_overwrites(tmp_path: Path) -> None:
    store = RealRunStateStore(tmp_path)
    store.save(_unfinished_state())

    finished = RunState(command="hack", undo_program=Program([SetParent(branch="a", parent="b")]))
    store.save(finished)

    assert store.load() == finished
    assert not store.has_unfinished_run()


def test_real_store_delete_is_idempotent(tmp_path: Path) -> None:
    store = RealRunStateStore(tmp_path)
    store.save(_unfinished_state())

    store.delete()
    store.delete()

    assert store.load() is None


def test_real_store_corrupt_file_raises(tmp_path: Path) -> None:
    (tmp_path / "runstate.json").write_text("{not json", encoding="utf-8")
    store = RealRunStateStore(tmp_path)

    with pytest.raises(PersistenceError):
        store.load()


def test_real_store_rejects_other_version(tmp_path: Path) -> None:
    data = _unfinished_state().to_dict()
    data["version"] = RUN_STATE_VERSION + 1
    (tmp_path / "runstate.json").write_text(json.dumps(data), encoding="utf-8")

    with pytest.raises(PersistenceError, match="version"):
        RealRunStateStore(tmp_path).load()


def test_unknown_fields_are_ignored() -> None:
    data = _unfinished_state().to_dict()
    data["written_by"] = "a newer release"
    data["remaining_program"][0]["retries"] = 3

    assert RunState.from_dict(data) == _unfinished_state()


def test_unknown_opcode_kind_is_rejected() -> None:
    data = _unfinished_state().to_dict()
    data["remaining_program"].append({"kind": "teleport"})

    with pytest.raises(PersistenceError):
        RunState.from_dict(data)


def test_unfinished_record_needs_details() -> None:
    data = _unfinished_state().to_dict()
    data["unfinished_details"] = None

    with pytest.raises(PersistenceError):
        RunState.from_dict(data)


def test_serialized_form_has_expected_fields() -> None:
    data = _unfinished_state().to_dict()

    assert data["version"] == RUN_STATE_VERSION
    assert data["command"] == "sync"
    assert data["is_unfinished"] is True
    assert data["unfinished_details"] == {"end_branch": "feature", "can_skip": True}
    assert data["failed_opcode"]["kind"] == "merge"
    assert [op["kind"] for op in data["undo_program"]] == ["reset_to_sha", "checkout"]


def test_fake_store_isolates_saved_state() -> None:
    store = FakeRunStateStore()
    state = _unfinished_state()

    store.save(state)
    state.remaining_program.pop()

    loaded = store.load()
    assert loaded is not None
    assert len(loaded.remaining_program) == 2
    assert store.save_count == 1


def test_ensure_no_unfinished_run() -> None:
    ensure_no_unfinished_run(FakeRunStateStore())
    ensure_no_unfinished_run(FakeRunStateStore(RunState(command="hack")))

    with pytest.raises(UnfinishedRunError, match="sync"):
        ensure_no_unfinished_run(FakeRunStateStore(_unfinished_state()))
