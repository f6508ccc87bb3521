"""Production Git implementation using subprocess.

This module provides the real Git implementation that executes actual git
commands via subprocess.
"""

import subprocess
from pathlib import Path

from stacktown.core.branch_names import DEFAULT_REMOTE
from stacktown.core.git.abc import CommandResult, Git
from stacktown.core.subprocess import run_command, run_subprocess_with_context

# ============================================================================
# Production Implementation
# ============================================================================


class RealGit(Git):
    """Production implementation using subprocess.

    All git operations execute actual git commands via subprocess.
    """

    def get_current_branch(self, cwd: Path) -> str | None:
        """Get the currently checked-out branch."""
        result = subprocess.run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None

        branch = result.stdout.strip()
        if branch == "HEAD":
            return None

        return branch

    def get_current_sha(self, cwd: Path) -> str:
        """Get the commit SHA of HEAD."""
        result = run_subprocess_with_context(
            ["git", "rev-parse", "HEAD"],
            operation_context="determine the current commit",
            cwd=cwd,
        )
        return result.stdout.strip()

    def get_branch_head(self, repo_root: Path, branch: str) -> str | None:
        """Get the commit SHA at the head of a branch."""
        result = subprocess.run(
            ["git", "rev-parse", "--verify", "--quiet", f"{branch}^{{commit}}"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def get_trunk_branch(self, repo_root: Path) -> str:
        """Get the trunk branch name for the repository.

        Detects trunk by checking git's remote HEAD reference. Falls back to
        checking for existence of common trunk branch names if detection fails.
        """
        # 1. Try git symbolic-ref to detect default branch
        result = subprocess.run(
            ["git", "symbolic-ref", f"refs/remotes/{DEFAULT_REMOTE}/HEAD"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode == 0:
            # Parse "refs/remotes/origin/master" -> "master"
            ref = result.stdout.strip()
            prefix = f"refs/remotes/{DEFAULT_REMOTE}/"
            if ref.startswith(prefix):
                return ref.replace(prefix, "")

        # 2. Fallback: try 'main' then 'master', use first that exists
        for candidate in ["main", "master"]:
            result = subprocess.run(
                ["git", "show-ref", "--verify", f"refs/heads/{candidate}"],
                cwd=repo_root,
                capture_output=True,
                check=False,
            )
            if result.returncode == 0:
                return candidate

        # 3. Final fallback: 'main'
        return "main"

    def get_git_common_dir(self, cwd: Path) -> Path | None:
        """Get the common git directory."""
        result = subprocess.run(
            ["git", "rev-parse", "--git-common-dir"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None

        git_dir = Path(result.stdout.strip())
        if not git_dir.is_absolute():
            git_dir = cwd / git_dir
        return git_dir.resolve()

    def has_uncommitted_changes(self, cwd: Path) -> bool:
        """Check if the working tree has uncommitted changes."""
        result = subprocess.run(
            ["git", "status", "--porcelain"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return False
        return bool(result.stdout.strip())

    def has_conflicts(self, cwd: Path) -> bool:
        """Check if the index contains unmerged paths."""
        result = subprocess.run(
            ["git", "diff", "--name-only", "--diff-filter=U"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return False
        return bool(result.stdout.strip())

    def has_merge_in_progress(self, cwd: Path) -> bool:
        """Check if a merge is waiting to be committed (MERGE_HEAD exists)."""
        return self._git_path_exists(cwd, "MERGE_HEAD")

    def has_rebase_in_progress(self, cwd: Path) -> bool:
        """Check if a rebase is stopped (rebase-merge or rebase-apply exists)."""
        return self._git_path_exists(cwd, "rebase-merge") or self._git_path_exists(
            cwd, "rebase-apply"
        )

    def _git_path_exists(self, cwd: Path, name: str) -> bool:
        result = subprocess.run(
            ["git", "rev-parse", "--git-path", name],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return False

        path = Path(result.stdout.strip())
        if not path.is_absolute():
            path = cwd / path
        return path.exists()

    def list_local_branches(self, repo_root: Path) -> list[str]:
        """List all local branch names in the repository."""
        result = run_subprocess_with_context(
            ["git", "branch", "--format=%(refname:short)"],
            operation_context="list local branches",
            cwd=repo_root,
        )
        return [line.strip() for line in result.stdout.strip().split("\n") if line.strip()]

    def get_remote_url(self, repo_root: Path, remote: str) -> str | None:
        """Get the URL of a remote."""
        result = subprocess.run(
            ["git", "remote", "get-url", remote],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def fetch(self, cwd: Path) -> CommandResult:
        return run_command(["git", "fetch", "--prune", "--tags"], cwd)

    def checkout_branch(self, cwd: Path, branch: str) -> CommandResult:
        return run_command(["git", "checkout", branch], cwd)

    def create_branch(self, cwd: Path, branch: str, start_point: str) -> CommandResult:
        return run_command(["git", "branch", branch, start_point], cwd)

    def merge_no_edit(self, cwd: Path, branch: str) -> CommandResult:
        return run_command(["git", "merge", "--no-edit", branch], cwd)

    def rebase(self, cwd: Path, branch: str) -> CommandResult:
        return run_command(["git", "rebase", branch], cwd)

    def abort_merge(self, cwd: Path) -> CommandResult:
        return run_command(["git", "merge", "--abort"], cwd)

    def continue_merge(self, cwd: Path) -> CommandResult:
        return run_command(["git", "commit", "--no-edit"], cwd)

    def abort_rebase(self, cwd: Path) -> CommandResult:
        return run_command(["git", "rebase", "--abort"], cwd)

    def continue_rebase(self, cwd: Path) -> CommandResult:
        # core.editor=true keeps git from opening an editor for the commit message
        return run_command(["git", "-c", "core.editor=true", "rebase", "--continue"], cwd)

    def push_branch(
        self, cwd: Path, branch: str, *, force: bool, set_upstream: bool
    ) -> CommandResult:
        cmd = ["git", "push"]
        if force:
            cmd.append("--force-with-lease")
        if set_upstream:
            cmd.append("-u")
        cmd.extend([DEFAULT_REMOTE, branch])
        return run_command(cmd, cwd)

    def reset_remote_branch(self, cwd: Path, branch: str, sha: str) -> CommandResult:
        refspec = f"{sha}:refs/heads/{branch}"
        return run_command(["git", "push", "--force", DEFAULT_REMOTE, refspec], cwd)

    def delete_local_branch(self, cwd: Path, branch: str, *, force: bool) -> CommandResult:
        flag = "-D" if force else "-d"
        return run_command(["git", "branch", flag, branch], cwd)

    def delete_remote_branch(self, cwd: Path, branch: str) -> CommandResult:
        return run_command(["git", "push", DEFAULT_REMOTE, f":{branch}"], cwd)

    def reset_hard(self, cwd: Path, sha: str) -> CommandResult:
        return run_command(["git", "reset", "--hard", sha], cwd)

    def add_remote(self, cwd: Path, name: str, url: str) -> CommandResult:
        return run_command(["git", "remote", "add", name, url], cwd)

    def remove_remote(self, cwd: Path, name: str) -> CommandResult:
        return run_command(["git", "remote", "remove", name], cwd)
