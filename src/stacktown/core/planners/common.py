"""Inputs and precondition checks shared by all planners."""

import logging
from dataclasses import dataclass
from pathlib import Path

from stacktown.core.branch_names import normalize_branch_name, tracking_branch
from stacktown.core.config_store import RepoConfig
from stacktown.core.errors import ValidationError
from stacktown.core.git.abc import Git
from stacktown.core.hosting.abc import Connector
from stacktown.core.lineage import Lineage
from stacktown.core.run_state_store import RunStateStore, ensure_no_unfinished_run

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanInputs:
    """Read-only view of the repository a planner works from."""

    git: Git
    repo_root: Path
    lineage: Lineage
    config: RepoConfig
    connector: Connector | None
    store: RunStateStore

    @property
    def online(self) -> bool:
        return not self.config.offline

    def has_local_branch(self, branch: str) -> bool:
        return self.git.get_branch_head(self.repo_root, branch) is not None

    def has_tracking_branch(self, branch: str) -> bool:
        """Whether origin has `branch`. Always False when offline."""
        if not self.online:
            return False
        return self.git.get_branch_head(self.repo_root, tracking_branch(branch)) is not None


def ensure_can_start(inputs: PlanInputs) -> str:
    """Check the preconditions every workflow shares.

    Returns:
        The currently checked-out branch

    Raises:
        UnfinishedRunError: If another workflow ended on a conflict
        ValidationError: If the working tree is dirty or HEAD is detached
    """
    ensure_no_unfinished_run(inputs.store)

    if inputs.git.has_uncommitted_changes(inputs.repo_root):
        raise ValidationError(
            "you have uncommitted changes; commit or stash them before running this command"
        )

    current = inputs.git.get_current_branch(inputs.repo_root)
    if current is None:
        raise ValidationError("not on a branch (detached HEAD)")

    logger.debug("Planning from branch '%s'", current)
    return current


def resolve_branch(inputs: PlanInputs, name: str | None, default: str) -> str:
    """Normalize an optional branch argument and require it to exist locally."""
    branch = normalize_branch_name(name) if name is not None else default
    if not inputs.has_local_branch(branch):
        raise ValidationError(f"there is no local branch named '{branch}'")
    return branch


def ensure_feature_branch(inputs: PlanInputs, branch: str, action: str) -> str:
    """Require `branch` to be a feature branch with a known parent.

    Returns:
        The parent of `branch`
    """
    if inputs.lineage.is_root(branch):
        raise ValidationError(f"cannot {action} the main or a perennial branch '{branch}'")
    parent = inputs.lineage.parent(branch)
    if parent is None:
        raise ValidationError(
            f"branch '{branch}' has no parent; set one with `stacktown config set-parent`"
        )
    return parent
