"""Run state store interface and implementations."""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from stacktown.core.errors import PersistenceError, UnfinishedRunError
from stacktown.core.run_state import RunState

logger = logging.getLogger(__name__)

RUN_STATE_FILENAME = "runstate.json"


class RunStateStore(ABC):
    """Interface for persisting the single run state of a repository.

    No cross-process locking is provided: concurrent invocations against the
    same working copy overwrite each other (last writer wins).
    """

    @abstractmethod
    def load(self) -> RunState | None:
        """Load the stored run state.

        Returns:
            The run state, or None if nothing is stored

        Raises:
            PersistenceError: If a record exists but cannot be read or parsed
        """
        ...

    @abstractmethod
    def save(self, state: RunState) -> None:
        """Store a run state, replacing any previous one.

        Raises:
            PersistenceError: If the record cannot be written
        """
        ...

    @abstractmethod
    def delete(self) -> None:
        """Remove the stored run state. Deleting when none exists is fine."""
        ...

    def has_unfinished_run(self) -> bool:
        """Check whether an unfinished workflow is waiting to be resolved."""
        state = self.load()
        return state is not None and state.is_unfinished


def ensure_no_unfinished_run(store: RunStateStore) -> None:
    """Refuse to start a new workflow while another one is unfinished.

    Raises:
        UnfinishedRunError: If an unfinished run state exists
    """
    state = store.load()
    if state is not None and state.is_unfinished:
        raise UnfinishedRunError(state.command)


class RealRunStateStore(RunStateStore):
    """Filesystem-based store keeping a JSON file in the repository's git dir."""

    def __init__(self, state_dir: Path) -> None:
        """Initialize with the stacktown directory inside the git common dir."""
        self.state_dir = state_dir
        self.path = state_dir / RUN_STATE_FILENAME

    def load(self) -> RunState | None:
        """Load run state from JSON file."""
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PersistenceError(f"cannot read run state at {self.path}: {e}") from e

        logger.debug("Loaded run state from %s", self.path)
        return RunState.from_dict(data)

    def save(self, state: RunState) -> None:
        """Save run state to JSON file.

        Writes to a temporary file first and renames it over the old record.
        """
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"cannot write run state to {self.path}: {e}") from e

        logger.debug("Saved run state for '%s' to %s", state.command, self.path)

    def delete(self) -> None:
        """Remove run state file."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"cannot delete run state at {self.path}: {e}") from e

        logger.debug("Deleted run state at %s", self.path)


class FakeRunStateStore(RunStateStore):
    """In-memory run state store for testing.

    Records go through the same serialization as the real store, so a saved
    state can be mutated afterwards without affecting what is stored.
    """

    def __init__(self, state: RunState | None = None) -> None:
        self._data = state.to_dict() if state is not None else None
        self.save_count = 0
        self.delete_count = 0

    def load(self) -> RunState | None:
        if self._data is None:
            return None
        return RunState.from_dict(self._data)

    def save(self, state: RunState) -> None:
        self._data = state.to_dict()
        self.save_count += 1

    def delete(self) -> None:
        self._data = None
        self.delete_count += 1
