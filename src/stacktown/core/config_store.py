"""Per-repository configuration stored in the git directory.

The file lives at <git-common-dir>/stacktown/config.toml so that all worktrees
of a repository share it and it never shows up in `git status`:

    main_branch = "main"
    perennial_branches = ["release"]
    offline = false
    push_new_branches = true
    sync_feature_strategy = "merge"

    [lineage]
    feature-a = "main"
    feature-b = "feature-a"
"""

import logging
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from pathlib import Path

import tomlkit

from stacktown.core.errors import PersistenceError, ValidationError
from stacktown.core.lineage import Lineage

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.toml"
SYNC_STRATEGIES = ("merge", "rebase")


@dataclass(frozen=True)
class RepoConfig:
    """Immutable repository configuration.

    `main_branch` is None until configured; callers then fall back to git's
    trunk detection.
    """

    main_branch: str | None = None
    perennial_branches: tuple[str, ...] = ()
    offline: bool = False
    push_new_branches: bool = False
    sync_feature_strategy: str = "merge"
    lineage: dict[str, str] = field(default_factory=dict)

    def build_lineage(self, trunk_branch: str) -> Lineage:
        """Build the lineage, using `trunk_branch` when no main branch is configured."""
        return Lineage(
            self.lineage,
            main_branch=self.main_branch or trunk_branch,
            perennial_branches=self.perennial_branches,
        )

    def with_lineage(self, lineage: Lineage) -> "RepoConfig":
        return replace(self, lineage=lineage.as_dict())


class ConfigStore(ABC):
    """Abstract interface for repository config access."""

    @abstractmethod
    def load(self) -> RepoConfig:
        """Load the config; a missing file yields the defaults.

        Raises:
            PersistenceError: If the file exists but is malformed
        """
        ...

    @abstractmethod
    def save(self, config: RepoConfig) -> None:
        """Write the config, replacing the stored values."""
        ...

    @abstractmethod
    def path(self) -> Path:
        """Path of the config file (for messages and debugging)."""
        ...

    def save_lineage(self, lineage: Lineage) -> None:
        """Persist only the lineage table of the config."""
        self.save(self.load().with_lineage(lineage))


class RealConfigStore(ConfigStore):
    """Production implementation reading and writing config.toml.

    Reads with tomllib and writes with tomlkit so that comments and layout a
    user added by hand survive a save.
    """

    def __init__(self, state_dir: Path) -> None:
        self._path = state_dir / CONFIG_FILENAME

    def path(self) -> Path:
        return self._path

    def load(self) -> RepoConfig:
        if not self._path.exists():
            return RepoConfig()

        try:
            data = tomllib.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise PersistenceError(f"cannot read config at {self._path}: {e}") from e

        return _config_from_data(data, self._path)

    def save(self, config: RepoConfig) -> None:
        if self._path.exists():
            with self._path.open("r", encoding="utf-8") as f:
                doc = tomlkit.load(f)
        else:
            doc = tomlkit.document()

        if config.main_branch is not None:
            doc["main_branch"] = config.main_branch
        elif "main_branch" in doc:
            del doc["main_branch"]
        doc["perennial_branches"] = list(config.perennial_branches)
        doc["offline"] = config.offline
        doc["push_new_branches"] = config.push_new_branches
        doc["sync_feature_strategy"] = config.sync_feature_strategy

        lineage_table = tomlkit.table()
        for branch in sorted(config.lineage):
            lineage_table[branch] = config.lineage[branch]
        doc["lineage"] = lineage_table

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as f:
                tomlkit.dump(doc, f)
        except OSError as e:
            raise PersistenceError(f"cannot write config to {self._path}: {e}") from e

        logger.debug("Saved config to %s", self._path)


class FakeConfigStore(ConfigStore):
    """In-memory config store for testing.

    `saved` records every config passed to save() in order.
    """

    def __init__(self, config: RepoConfig | None = None) -> None:
        self._config = config if config is not None else RepoConfig()
        self.saved: list[RepoConfig] = []

    def path(self) -> Path:
        return Path("/test/.git/stacktown") / CONFIG_FILENAME

    def load(self) -> RepoConfig:
        return self._config

    def save(self, config: RepoConfig) -> None:
        self._config = config
        self.saved.append(config)


def _config_from_data(data: dict, path: Path) -> RepoConfig:
    main_branch = data.get("main_branch")
    if main_branch is not None and not isinstance(main_branch, str):
        raise PersistenceError(f"'main_branch' in {path} must be a string")

    perennials = data.get("perennial_branches", [])
    if not isinstance(perennials, list) or not all(isinstance(b, str) for b in perennials):
        raise PersistenceError(f"'perennial_branches' in {path} must be a list of strings")

    strategy = data.get("sync_feature_strategy", "merge")
    if strategy not in SYNC_STRATEGIES:
        raise PersistenceError(
            f"'sync_feature_strategy' in {path} must be one of {', '.join(SYNC_STRATEGIES)}"
        )

    lineage = data.get("lineage", {})
    if not isinstance(lineage, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in lineage.items()
    ):
        raise PersistenceError(f"[lineage] in {path} must map branch names to parent names")

    return RepoConfig(
        main_branch=main_branch,
        perennial_branches=tuple(perennials),
        offline=bool(data.get("offline", False)),
        push_new_branches=bool(data.get("push_new_branches", False)),
        sync_feature_strategy=strategy,
        lineage=dict(lineage),
    )


def validate_sync_strategy(strategy: str) -> str:
    """Return `strategy` if it is a known sync strategy.

    Raises:
        ValidationError: For any other value
    """
    if strategy not in SYNC_STRATEGIES:
        raise ValidationError(
            f"unknown sync strategy '{strategy}' (expected one of {', '.join(SYNC_STRATEGIES)})"
        )
    return strategy
