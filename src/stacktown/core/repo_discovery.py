"""Repository discovery functionality.

Discovers git repository information from a given path without requiring a
full StacktownContext, so the stores can be built before the context is.
"""

from dataclasses import dataclass
from pathlib import Path

from stacktown.core.git.abc import Git

STATE_DIRNAME = "stacktown"


@dataclass(frozen=True)
class RepoContext:
    """Represents a git repo root and the directory stacktown keeps its files in."""

    root: Path  # directory git commands run in
    git_common_dir: Path
    state_dir: Path  # <git-common-dir>/stacktown


@dataclass(frozen=True)
class NoRepoSentinel:
    """Sentinel value indicating execution outside a git repository.

    Commands that require a repository check for this sentinel and fail fast.
    """

    message: str = "Not inside a git repository"


def discover_repo_or_sentinel(cwd: Path, git: Git) -> RepoContext | NoRepoSentinel:
    """Find the repository containing `cwd`.

    Uses the git common dir so that linked worktrees share the state of the
    main repository.

    Returns:
        RepoContext if inside a git repository, NoRepoSentinel otherwise
    """
    if not cwd.exists():
        return NoRepoSentinel(message=f"Start path '{cwd}' does not exist")

    git_common_dir = git.get_git_common_dir(cwd)
    if git_common_dir is None:
        return NoRepoSentinel()

    return RepoContext(
        root=cwd.resolve(),
        git_common_dir=git_common_dir,
        state_dir=git_common_dir / STATE_DIRNAME,
    )
