"""Branch lineage: the parent/child forest of branches.

Feature branches have exactly one parent. The main branch and the perennial
branches are roots and have no parent entry. Lineage is a plain data structure
with no side effects; persisting it is the job of the config store.
"""

from collections.abc import Iterable, Mapping

from stacktown.core.errors import CyclicLineageError, ValidationError


class Lineage:
    """Mutable mapping from feature branch to parent branch."""

    def __init__(
        self,
        parents: Mapping[str, str] | None = None,
        *,
        main_branch: str = "main",
        perennial_branches: Iterable[str] = (),
    ) -> None:
        self._parents: dict[str, str] = dict(parents) if parents is not None else {}
        self.main_branch = main_branch
        self.perennial_branches: tuple[str, ...] = tuple(perennial_branches)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Lineage):
            return NotImplemented
        return (
            self._parents == other._parents
            and self.main_branch == other.main_branch
            and self.perennial_branches == other.perennial_branches
        )

    def __repr__(self) -> str:
        return (
            f"Lineage({self._parents!r}, main_branch={self.main_branch!r}, "
            f"perennial_branches={self.perennial_branches!r})"
        )

    def copy(self) -> "Lineage":
        return Lineage(
            self._parents,
            main_branch=self.main_branch,
            perennial_branches=self.perennial_branches,
        )

    def as_dict(self) -> dict[str, str]:
        """Return the parent entries as a new dict."""
        return dict(self._parents)

    def roots(self) -> list[str]:
        """Main branch first, then perennial branches in configured order."""
        result = [self.main_branch]
        for branch in self.perennial_branches:
            if branch not in result:
                result.append(branch)
        return result

    def is_root(self, branch: str) -> bool:
        return branch == self.main_branch or branch in self.perennial_branches

    def branches(self) -> list[str]:
        """All branches with a parent entry, sorted by name."""
        return sorted(self._parents)

    def parent(self, branch: str) -> str | None:
        return self._parents.get(branch)

    def children(self, branch: str) -> list[str]:
        """Direct children of a branch, sorted by name."""
        return sorted(child for child, parent in self._parents.items() if parent == branch)

    def ancestors(self, branch: str) -> list[str]:
        """Ancestors of a branch, nearest first, ending at its root.

        Iterative with a visited set and a hop bound so malformed input
        terminates.

        Raises:
            CyclicLineageError: If the ancestor chain loops
        """
        result: list[str] = []
        visited = {branch}
        max_hops = len(self._parents) + 1
        current = self._parents.get(branch)
        while current is not None:
            if current in visited or len(result) >= max_hops:
                raise CyclicLineageError(branch)
            result.append(current)
            visited.add(current)
            current = self._parents.get(current)
        return result

    def descendants(self, branch: str) -> list[str]:
        """All transitive children, parents before their children."""
        result: list[str] = []
        seen = {branch}
        queue = self.children(branch)
        while queue:
            child = queue.pop(0)
            if child in seen:
                raise CyclicLineageError(child)
            seen.add(child)
            result.append(child)
            queue.extend(self.children(child))
        return result

    def order_ancestors_first(self, branches: Iterable[str]) -> list[str]:
        """Order branches so every branch comes after its ancestors.

        Branches sharing the same depth keep alphabetical order, which makes the
        result deterministic.
        """
        unique = sorted(set(branches))
        depth = {branch: len(self.ancestors(branch)) for branch in unique}
        return sorted(unique, key=lambda branch: (depth[branch], branch))

    def set_parent(self, branch: str, parent: str) -> None:
        """Record `parent` as the parent of `branch`.

        Raises:
            ValidationError: If `branch` is a root branch
            CyclicLineageError: If `parent` is `branch` or one of its descendants
        """
        if self.is_root(branch):
            raise ValidationError(f"cannot set a parent for root branch '{branch}'")
        if parent == branch:
            raise CyclicLineageError(branch, f"branch '{branch}' cannot be its own parent")
        if branch in self.ancestors(parent):
            raise CyclicLineageError(
                branch,
                f"cannot make '{parent}' the parent of '{branch}': "
                f"'{parent}' is a descendant of '{branch}'",
            )
        self._parents[branch] = parent

    def remove_parent(self, branch: str) -> None:
        """Remove the parent entry of `branch` if there is one."""
        self._parents.pop(branch, None)
