"""Application context with dependency injection."""

import os
from dataclasses import dataclass
from pathlib import Path

from stacktown.core.config_store import ConfigStore, FakeConfigStore, RealConfigStore
from stacktown.core.executor import Executor
from stacktown.core.git.abc import Git
from stacktown.core.git.real import RealGit
from stacktown.core.hosting.abc import Connector
from stacktown.core.hosting.github import GitHubConnector
from stacktown.core.lineage import Lineage
from stacktown.core.opcodes import RunArgs
from stacktown.core.repo_discovery import NoRepoSentinel, RepoContext, discover_repo_or_sentinel
from stacktown.core.run_state_store import (
    FakeRunStateStore,
    RealRunStateStore,
    RunStateStore,
)
from stacktown.core.user_feedback import InteractiveFeedback, SuppressedFeedback, UserFeedback


@dataclass(frozen=True)
class StacktownContext:
    """Immutable context holding all dependencies for stacktown operations.

    Created at CLI entry point and threaded through the application.
    Frozen to prevent accidental modification at runtime.

    `connector` is None when offline or outside a repository; proposal opcodes
    then do nothing.
    """

    git: Git
    connector: Connector | None
    run_state_store: RunStateStore
    config_store: ConfigStore
    feedback: UserFeedback
    cwd: Path  # Current working directory at CLI invocation
    repo: RepoContext | NoRepoSentinel

    @property
    def repo_root(self) -> Path:
        """Directory git commands run in (cwd outside a repository)."""
        if isinstance(self.repo, NoRepoSentinel):
            return self.cwd
        return self.repo.root

    def load_lineage(self) -> Lineage:
        """Build the lineage from config, falling back to git trunk detection."""
        config = self.config_store.load()
        return config.build_lineage(self.git.get_trunk_branch(self.repo_root))

    def executor(self, lineage: Lineage) -> Executor:
        """Create an executor whose opcodes mutate `lineage` and persist it."""
        args = RunArgs(
            git=self.git,
            connector=self.connector,
            lineage=lineage,
            repo_root=self.repo_root,
            save_lineage=self.config_store.save_lineage,
        )
        return Executor(args, self.run_state_store, self.feedback)

    @staticmethod
    def for_test(
        git: Git | None = None,
        connector: Connector | None = None,
        run_state_store: RunStateStore | None = None,
        config_store: ConfigStore | None = None,
        feedback: UserFeedback | None = None,
        cwd: Path | None = None,
        repo: RepoContext | NoRepoSentinel | None = None,
    ) -> "StacktownContext":
        """Create test context with optional pre-configured integration classes.

        Every unspecified dependency defaults to its fake implementation.

        Example:
            >>> git = FakeGit(branches={"main": "m0", "feature": "f0"})
            >>> ctx = StacktownContext.for_test(git=git)
        """
        from tests.fakes.user_feedback import FakeUserFeedback

        from stacktown.core.git.fake import FakeGit

        if git is None:
            git = FakeGit()

        if run_state_store is None:
            run_state_store = FakeRunStateStore()

        if config_store is None:
            config_store = FakeConfigStore()

        if feedback is None:
            feedback = FakeUserFeedback()

        if cwd is None:
            cwd = Path("/test/repo")

        if repo is None:
            repo = RepoContext(
                root=cwd,
                git_common_dir=cwd / ".git",
                state_dir=cwd / ".git" / "stacktown",
            )

        return StacktownContext(
            git=git,
            connector=connector,
            run_state_store=run_state_store,
            config_store=config_store,
            feedback=feedback,
            cwd=cwd,
            repo=repo,
        )


def safe_cwd() -> tuple[Path | None, str | None]:
    """Get current working directory, detecting if it no longer exists.

    Returns:
        tuple[Path | None, str | None]: (path, error_message)
        - If successful: (Path, None)
        - If directory deleted: (None, error_message)
    """
    try:
        return (Path.cwd(), None)
    except (FileNotFoundError, OSError):
        return (None, "Current working directory no longer exists")


def create_context(*, quiet: bool = False) -> StacktownContext:
    """Create production context with real implementations.

    Called at CLI entry point to create the context for the entire command
    execution.

    Args:
        quiet: If True, use SuppressedFeedback so only errors are shown
    """
    cwd_result, error_msg = safe_cwd()
    if cwd_result is None:
        raise RuntimeError(error_msg)
    cwd = cwd_result

    git = RealGit()
    repo = discover_repo_or_sentinel(cwd, git)

    if isinstance(repo, NoRepoSentinel):
        # Stores are never touched outside a repository; commands check the
        # sentinel first.
        state_dir = cwd / ".git" / "stacktown"
    else:
        state_dir = repo.state_dir

    config_store = RealConfigStore(state_dir)

    connector: Connector | None = None
    if not isinstance(repo, NoRepoSentinel) and not _offline(config_store):
        connector = GitHubConnector(repo.root)

    feedback: UserFeedback = SuppressedFeedback() if quiet else InteractiveFeedback()

    return StacktownContext(
        git=git,
        connector=connector,
        run_state_store=RealRunStateStore(state_dir),
        config_store=config_store,
        feedback=feedback,
        cwd=cwd,
        repo=repo,
    )


def _offline(config_store: ConfigStore) -> bool:
    if os.environ.get("STACKTOWN_OFFLINE"):
        return True
    return config_store.load().offline
