"""GitHub connector using the gh CLI."""

import json
from pathlib import Path

from stacktown.core.hosting.abc import Connector, Proposal
from stacktown.core.subprocess import run_subprocess_with_context


class GitHubConnector(Connector):
    """Production connector that shells out to `gh`.

    Requires an authenticated gh CLI. All commands run in the repository root so
    gh picks up the right repository from the origin remote.
    """

    def __init__(self, repo_root: Path) -> None:
        self._repo_root = repo_root

    def find_proposal(self, branch: str, target: str) -> Proposal | None:
        """Find the open pull request for a branch via gh pr list."""
        result = run_subprocess_with_context(
            [
                "gh",
                "pr",
                "list",
                "--head",
                branch,
                "--base",
                target,
                "--state",
                "open",
                "--json",
                "number,title,url,headRefName,baseRefName",
            ],
            operation_context=f"look up pull request for branch '{branch}'",
            cwd=self._repo_root,
        )
        entries = json.loads(result.stdout or "[]")
        if not entries:
            return None

        entry = entries[0]
        return Proposal(
            number=entry["number"],
            branch=entry["headRefName"],
            target=entry["baseRefName"],
            title=entry.get("title", ""),
            url=entry.get("url", ""),
        )

    def merge_proposal(self, number: int, message: str) -> str:
        """Squash-merge a pull request and return the merge commit SHA."""
        run_subprocess_with_context(
            ["gh", "pr", "merge", str(number), "--squash", "--subject", message],
            operation_context=f"merge PR #{number}",
            cwd=self._repo_root,
        )
        result = run_subprocess_with_context(
            ["gh", "pr", "view", str(number), "--json", "mergeCommit"],
            operation_context=f"read merge commit of PR #{number}",
            cwd=self._repo_root,
        )
        data = json.loads(result.stdout)
        merge_commit = data.get("mergeCommit") or {}
        return merge_commit.get("oid", "")

    def update_proposal_target(self, number: int, target: str) -> None:
        """Change the base branch of a pull request."""
        run_subprocess_with_context(
            ["gh", "pr", "edit", str(number), "--base", target],
            operation_context=f"update base branch of PR #{number} to '{target}'",
            cwd=self._repo_root,
        )
