"""In-memory connector for tests."""

from stacktown.core.hosting.abc import Connector, Proposal


class FakeConnector(Connector):
    """Fake hosting connector with pre-configured proposals.

    Merges and retargets are recorded for assertions. Proposals listed in
    `merge_failures` raise RuntimeError like a rejected merge would.
    """

    def __init__(
        self,
        *,
        proposals: list[Proposal] | None = None,
        merge_failures: set[int] | None = None,
    ) -> None:
        self._proposals = list(proposals) if proposals is not None else []
        self._merge_failures = merge_failures if merge_failures is not None else set()
        self.merged: list[tuple[int, str]] = []
        self.retargeted: list[tuple[int, str]] = []

    def find_proposal(self, branch: str, target: str) -> Proposal | None:
        for proposal in self._proposals:
            if proposal.branch == branch and proposal.target == target:
                return proposal
        return None

    def merge_proposal(self, number: int, message: str) -> str:
        if number in self._merge_failures:
            raise RuntimeError(f"Failed to merge PR #{number}\nPull request is not mergeable")
        self.merged.append((number, message))
        return f"merged-{number}"

    def update_proposal_target(self, number: int, target: str) -> None:
        self.retargeted.append((number, target))
        self._proposals = [
            Proposal(p.number, p.branch, target, p.title, p.url) if p.number == number else p
            for p in self._proposals
        ]
