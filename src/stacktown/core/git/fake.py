"""Fake Git operations for testing.

FakeGit is an in-memory simulation of a repository with one remote. It keeps
local and remote branch heads, the checked-out branch and an in-progress
merge/rebase, which is enough to exercise the executor end to end:

- merges and rebases listed in `merge_conflicts` / `rebase_conflicts` stop with
  git's conflict output and leave the operation in progress
- while a rebase is stopped, HEAD is detached and the current branch reads as None
- pushes listed in `push_failures` fail with a permission error
- every mutating call is recorded in `commands` for order assertions
"""

from pathlib import Path

from stacktown.core.git.abc import CommandResult, Git

_OK = CommandResult(success=True, stdout="", stderr="")


class FakeGit(Git):
    """In-memory fake implementation of Git operations.

    State is provided via constructor using keyword arguments with sensible
    defaults. The non-interface methods `resolve_conflicts()` and
    `finish_by_hand()` simulate what a user does in a terminal between runs.
    """

    def __init__(
        self,
        *,
        branches: dict[str, str] | None = None,
        remote_branches: dict[str, str] | None = None,
        current_branch: str = "main",
        trunk_branch: str = "main",
        git_common_dir: Path | None = None,
        remotes: dict[str, str] | None = None,
        merge_conflicts: set[tuple[str, str]] | None = None,
        rebase_conflicts: set[tuple[str, str]] | None = None,
        push_failures: set[str] | None = None,
        fetch_fails: bool = False,
        uncommitted_changes: bool = False,
    ) -> None:
        """Create FakeGit with pre-configured state.

        Args:
            branches: Local branch name -> head SHA (default: {"main": "main-0"})
            remote_branches: Branch name on origin -> head SHA
            current_branch: Checked-out branch
            trunk_branch: Value returned by get_trunk_branch()
            git_common_dir: Value returned by get_git_common_dir()
            remotes: Remote name -> URL
            merge_conflicts: (current_branch, merged_branch) pairs that conflict
            rebase_conflicts: (current_branch, onto_branch) pairs that conflict
            push_failures: Branches whose push is rejected
            fetch_fails: Make fetch() fail like a network error
            uncommitted_changes: Value returned by has_uncommitted_changes()
        """
        self.branches: dict[str, str] = (
            dict(branches) if branches is not None else {"main": "main-0"}
        )
        self.remote_branches: dict[str, str] = (
            dict(remote_branches) if remote_branches is not None else {}
        )
        self.current_branch = current_branch
        self.remotes: dict[str, str] = dict(remotes) if remotes is not None else {}
        self.commands: list[str] = []
        self.operation_in_progress: str | None = None
        self._trunk_branch = trunk_branch
        self._git_common_dir = git_common_dir
        self._merge_conflicts = merge_conflicts if merge_conflicts is not None else set()
        self._rebase_conflicts = rebase_conflicts if rebase_conflicts is not None else set()
        self._push_failures = push_failures if push_failures is not None else set()
        self._fetch_fails = fetch_fails
        self._uncommitted_changes = uncommitted_changes
        self._unresolved = False
        self._commit_counter = 0

    def resolve_conflicts(self) -> None:
        """Simulate the user resolving all conflicted files."""
        self._unresolved = False

    def finish_by_hand(self) -> None:
        """Simulate the user committing the merge or continuing the rebase themselves."""
        self._finish_operation()
        self._commit_on_current()

    # Read-only queries

    def get_current_branch(self, cwd: Path) -> str | None:
        if self.operation_in_progress == "rebase":
            return None
        return self.current_branch

    def get_current_sha(self, cwd: Path) -> str:
        if self.current_branch not in self.branches:
            raise RuntimeError(f"Failed to determine the current commit on {self.current_branch}")
        return self.branches[self.current_branch]

    def get_branch_head(self, repo_root: Path, branch: str) -> str | None:
        if branch.startswith("origin/"):
            return self.remote_branches.get(branch[len("origin/") :])
        return self.branches.get(branch)

    def get_trunk_branch(self, repo_root: Path) -> str:
        return self._trunk_branch

    def get_git_common_dir(self, cwd: Path) -> Path | None:
        return self._git_common_dir

    def has_uncommitted_changes(self, cwd: Path) -> bool:
        return self._uncommitted_changes or self._unresolved

    def has_conflicts(self, cwd: Path) -> bool:
        return self._unresolved

    def has_merge_in_progress(self, cwd: Path) -> bool:
        return self.operation_in_progress == "merge"

    def has_rebase_in_progress(self, cwd: Path) -> bool:
        return self.operation_in_progress == "rebase"

    def list_local_branches(self, repo_root: Path) -> list[str]:
        return sorted(self.branches)

    def get_remote_url(self, repo_root: Path, remote: str) -> str | None:
        return self.remotes.get(remote)

    # Mutating primitives

    def fetch(self, cwd: Path) -> CommandResult:
        self.commands.append("fetch")
        if self._fetch_fails:
            return CommandResult(
                False, "", "fatal: unable to access remote: Could not resolve host"
            )
        return _OK

    def checkout_branch(self, cwd: Path, branch: str) -> CommandResult:
        self.commands.append(f"checkout {branch}")
        if self.operation_in_progress is not None:
            return CommandResult(False, "", "error: you need to resolve your current index first")
        if branch not in self.branches:
            return CommandResult(
                False, "", f"error: pathspec '{branch}' did not match any file(s) known to git"
            )
        self.current_branch = branch
        return _OK

    def create_branch(self, cwd: Path, branch: str, start_point: str) -> CommandResult:
        self.commands.append(f"branch {branch} {start_point}")
        if branch in self.branches:
            return CommandResult(False, "", f"fatal: a branch named '{branch}' already exists")
        sha = self.get_branch_head(cwd, start_point)
        if sha is None:
            sha = start_point
        self.branches[branch] = sha
        return _OK

    def merge_no_edit(self, cwd: Path, branch: str) -> CommandResult:
        self.commands.append(f"merge {branch}")
        if self.get_branch_head(cwd, branch) is None:
            return CommandResult(False, "", f"merge: {branch} - not something we can merge")
        if (self.current_branch, branch) in self._merge_conflicts:
            self.operation_in_progress = "merge"
            self._unresolved = True
            return CommandResult(
                False,
                "CONFLICT (content): Merge conflict in file.txt\n"
                "Automatic merge failed; fix conflicts and then commit the result.",
                "",
            )
        self._commit_on_current()
        return _OK

    def rebase(self, cwd: Path, branch: str) -> CommandResult:
        self.commands.append(f"rebase {branch}")
        if self.get_branch_head(cwd, branch) is None:
            return CommandResult(False, "", f"fatal: invalid upstream '{branch}'")
        if (self.current_branch, branch) in self._rebase_conflicts:
            self.operation_in_progress = "rebase"
            self._unresolved = True
            return CommandResult(
                False,
                "CONFLICT (content): Merge conflict in file.txt",
                "error: could not apply 1a2b3c4... change file.txt",
            )
        self._commit_on_current()
        return _OK

    def abort_merge(self, cwd: Path) -> CommandResult:
        self.commands.append("merge --abort")
        if self.operation_in_progress != "merge":
            return CommandResult(
                False, "", "fatal: There is no merge to abort (MERGE_HEAD missing)."
            )
        self._finish_operation()
        return _OK

    def continue_merge(self, cwd: Path) -> CommandResult:
        self.commands.append("commit --no-edit")
        if self.operation_in_progress != "merge":
            return CommandResult(False, "", "fatal: There is no merge in progress.")
        if self._unresolved:
            return CommandResult(
                False, "", "error: Committing is not possible because you have unmerged files."
            )
        self._finish_operation()
        self._commit_on_current()
        return _OK

    def abort_rebase(self, cwd: Path) -> CommandResult:
        self.commands.append("rebase --abort")
        if self.operation_in_progress != "rebase":
            return CommandResult(False, "", "fatal: No rebase in progress?")
        self._finish_operation()
        return _OK

    def continue_rebase(self, cwd: Path) -> CommandResult:
        self.commands.append("rebase --continue")
        if self.operation_in_progress != "rebase":
            return CommandResult(False, "", "fatal: No rebase in progress?")
        if self._unresolved:
            return CommandResult(
                False, "CONFLICT (content): Merge conflict in file.txt", "error: fix conflicts"
            )
        self._finish_operation()
        self._commit_on_current()
        return _OK

    def push_branch(
        self, cwd: Path, branch: str, *, force: bool, set_upstream: bool
    ) -> CommandResult:
        self.commands.append(f"push {branch}" + (" --force" if force else ""))
        if branch in self._push_failures:
            return CommandResult(
                False, "", "remote: Permission to repo denied.\nfatal: unable to access remote"
            )
        if branch not in self.branches:
            return CommandResult(False, "", f"error: src refspec {branch} does not match any")
        self.remote_branches[branch] = self.branches[branch]
        return _OK

    def reset_remote_branch(self, cwd: Path, branch: str, sha: str) -> CommandResult:
        self.commands.append(f"push --force origin {sha}:{branch}")
        self.remote_branches[branch] = sha
        return _OK

    def delete_local_branch(self, cwd: Path, branch: str, *, force: bool) -> CommandResult:
        self.commands.append(f"branch -D {branch}" if force else f"branch -d {branch}")
        if branch not in self.branches:
            return CommandResult(False, "", f"error: branch '{branch}' not found")
        if branch == self.current_branch:
            return CommandResult(
                False, "", f"error: Cannot delete branch '{branch}' checked out"
            )
        del self.branches[branch]
        return _OK

    def delete_remote_branch(self, cwd: Path, branch: str) -> CommandResult:
        self.commands.append(f"push origin :{branch}")
        if branch not in self.remote_branches:
            return CommandResult(
                False, "", f"error: unable to delete '{branch}': remote ref does not exist"
            )
        del self.remote_branches[branch]
        return _OK

    def reset_hard(self, cwd: Path, sha: str) -> CommandResult:
        self.commands.append(f"reset --hard {sha}")
        self._finish_operation()
        self.branches[self.current_branch] = sha
        return _OK

    def add_remote(self, cwd: Path, name: str, url: str) -> CommandResult:
        self.commands.append(f"remote add {name} {url}")
        if name in self.remotes:
            return CommandResult(False, "", f"error: remote {name} already exists.")
        self.remotes[name] = url
        return _OK

    def remove_remote(self, cwd: Path, name: str) -> CommandResult:
        self.commands.append(f"remote remove {name}")
        if name not in self.remotes:
            return CommandResult(False, "", f"error: No such remote: '{name}'")
        del self.remotes[name]
        return _OK

    def _commit_on_current(self) -> None:
        self._commit_counter += 1
        self.branches[self.current_branch] = f"{self.current_branch}-{self._commit_counter}"

    def _finish_operation(self) -> None:
        self.operation_in_progress = None
        self._unresolved = False
