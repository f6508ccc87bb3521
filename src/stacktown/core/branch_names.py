"""Branch name normalization and validation.

Branch references are plain strings throughout stacktown. These helpers make
sure a name coming from the user or from configuration is in canonical form
before it reaches the lineage, a planner or the git backend.
"""

import re

from stacktown.core.errors import ValidationError

DEFAULT_REMOTE = "origin"

# Characters git refuses in ref names (see git-check-ref-format)
_FORBIDDEN_CHARS = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]")


def normalize_branch_name(name: str) -> str:
    """Return the canonical form of a local branch name.

    - Strips surrounding whitespace
    - Removes a leading ``refs/heads/`` prefix

    Raises:
        ValidationError: If the result is not a valid git branch name
    """
    normalized = name.strip()
    if normalized.startswith("refs/heads/"):
        normalized = normalized[len("refs/heads/") :]

    problem = _ref_format_problem(normalized)
    if problem is not None:
        raise ValidationError(f"'{name}' is not a valid branch name: {problem}")
    return normalized


def is_valid_branch_name(name: str) -> bool:
    """Check a name against git's ref-format rules without raising."""
    return _ref_format_problem(name) is None


def tracking_branch(branch: str, remote: str = DEFAULT_REMOTE) -> str:
    """Return the remote-qualified name of a local branch.

    Examples:
        >>> tracking_branch("feature")
        'origin/feature'
    """
    return f"{remote}/{branch}"


def local_part(branch: str, remote: str = DEFAULT_REMOTE) -> str:
    """Strip a ``<remote>/`` prefix if present."""
    prefix = f"{remote}/"
    if branch.startswith(prefix):
        return branch[len(prefix) :]
    return branch


def _ref_format_problem(name: str) -> str | None:
    if not name:
        return "name is empty"
    if _FORBIDDEN_CHARS.search(name):
        return "contains whitespace or one of ~^:?*[\\"
    if name.startswith("-"):
        return "starts with '-'"
    if name.startswith("/") or name.endswith("/"):
        return "starts or ends with '/'"
    if ".." in name or "//" in name or "@{" in name:
        return "contains '..', '//' or '@{'"
    if name.endswith(".") or name.endswith(".lock"):
        return "ends with '.' or '.lock'"
    if name == "@":
        return "is '@'"
    if any(component.startswith(".") for component in name.split("/")):
        return "has a path component starting with '.'"
    return None
