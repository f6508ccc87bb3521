"""The closed set of atomic actions a workflow program is made of.

Every opcode is a small dataclass holding its parameters plus the pre-action
state it discovers while running (the `previous_*` fields, with `captured`
marking that they were filled). The four operations of the opcode contract are
module-level functions that dispatch over the union with `match`:

- run_opcode(): perform the action against the repository
- abort_steps(): opcodes that cancel a conflicting, in-progress run of it
- continue_steps(): opcodes that finish it after the user resolved conflicts
- undo_steps(): opcodes that reverse it after it succeeded

New kinds are added by defining a dataclass, adding it to `Opcode` and
`OPCODE_KINDS`, and extending the `match` statements.
"""

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from stacktown.core.branch_names import tracking_branch
from stacktown.core.errors import (
    ConflictFailure,
    FatalFailure,
    InternalError,
    PersistenceError,
    StacktownError,
)
from stacktown.core.git.abc import CommandResult, Git, is_conflict_output
from stacktown.core.hosting.abc import Connector
from stacktown.core.lineage import Lineage


@dataclass(frozen=True)
class RunArgs:
    """Everything an opcode may touch while running.

    Threaded explicitly into every opcode; nothing is read from process-wide
    state.
    """

    git: Git
    connector: Connector | None
    lineage: Lineage
    repo_root: Path
    save_lineage: Callable[[Lineage], None]


# ============================================================================
# Opcode kinds
# ============================================================================


@dataclass(kw_only=True)
class Checkout:
    branch: str
    previous_branch: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class CreateBranch:
    branch: str
    start_point: str


@dataclass(kw_only=True)
class Fetch:
    pass


@dataclass(kw_only=True)
class Merge:
    """Merge `branch` into the current branch."""

    branch: str
    previous_sha: str | None = None
    on_branch: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class Rebase:
    """Rebase the current branch onto `branch`."""

    branch: str
    previous_sha: str | None = None
    on_branch: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class AbortMerge:
    pass


@dataclass(kw_only=True)
class ContinueMerge:
    pass


@dataclass(kw_only=True)
class AbortRebase:
    pass


@dataclass(kw_only=True)
class ContinueRebase:
    """Continue a stopped rebase of `on_branch`.

    HEAD is detached while a rebase is stopped, so the branch being rebased
    is carried over from the Rebase that started it.
    """

    on_branch: str | None = None


@dataclass(kw_only=True)
class Push:
    branch: str
    force: bool = False
    set_upstream: bool = False
    previous_remote_sha: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class ResetRemoteBranch:
    branch: str
    sha: str
    previous_remote_sha: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class DeleteLocalBranch:
    branch: str
    force: bool = False
    previous_sha: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class DeleteRemoteBranch:
    branch: str
    previous_sha: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class ResetToSha:
    """Hard-reset the current branch to `sha`."""

    sha: str
    previous_sha: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class SetParent:
    branch: str
    parent: str
    previous_parent: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class RemoveParent:
    branch: str
    previous_parent: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class AddRemote:
    name: str
    url: str


@dataclass(kw_only=True)
class RemoveRemote:
    name: str
    previous_url: str | None = None
    captured: bool = False


@dataclass(kw_only=True)
class MergeProposal:
    """Merge a hosted pull request; a no-op without a connector."""

    number: int
    message: str


@dataclass(kw_only=True)
class UpdateProposalTarget:
    """Retarget a hosted pull request; a no-op without a connector."""

    number: int
    target: str
    previous_target: str


Opcode = (
    Checkout
    | CreateBranch
    | Fetch
    | Merge
    | Rebase
    | AbortMerge
    | ContinueMerge
    | AbortRebase
    | ContinueRebase
    | Push
    | ResetRemoteBranch
    | DeleteLocalBranch
    | DeleteRemoteBranch
    | ResetToSha
    | SetParent
    | RemoveParent
    | AddRemote
    | RemoveRemote
    | MergeProposal
    | UpdateProposalTarget
)

OPCODE_KINDS: dict[str, type] = {
    "checkout": Checkout,
    "create_branch": CreateBranch,
    "fetch": Fetch,
    "merge": Merge,
    "rebase": Rebase,
    "abort_merge": AbortMerge,
    "continue_merge": ContinueMerge,
    "abort_rebase": AbortRebase,
    "continue_rebase": ContinueRebase,
    "push": Push,
    "reset_remote_branch": ResetRemoteBranch,
    "delete_local_branch": DeleteLocalBranch,
    "delete_remote_branch": DeleteRemoteBranch,
    "reset_to_sha": ResetToSha,
    "set_parent": SetParent,
    "remove_parent": RemoveParent,
    "add_remote": AddRemote,
    "remove_remote": RemoveRemote,
    "merge_proposal": MergeProposal,
    "update_proposal_target": UpdateProposalTarget,
}

_KIND_NAMES: dict[type, str] = {cls: name for name, cls in OPCODE_KINDS.items()}


def opcode_kind(op: Opcode) -> str:
    """Return the serialized kind name of an opcode."""
    return _KIND_NAMES[type(op)]


# ============================================================================
# run
# ============================================================================


def run_opcode(op: Opcode, args: RunArgs) -> None:
    """Perform the action, capturing pre-action state for a later undo.

    Raises:
        ConflictFailure: If a merge or rebase stopped on conflicting content
        FatalFailure: For any other failure
    """
    git = args.git
    cwd = args.repo_root

    match op:
        case Checkout(branch=branch):
            op.previous_branch = git.get_current_branch(cwd)
            op.captured = True
            if op.previous_branch != branch:
                _require_success(op, git.checkout_branch(cwd, branch))

        case CreateBranch(branch=branch, start_point=start_point):
            _require_success(op, git.create_branch(cwd, branch, start_point))

        case Fetch():
            _require_success(op, git.fetch(cwd))

        case Merge(branch=branch):
            op.previous_sha = _current_sha(op, args)
            op.on_branch = git.get_current_branch(cwd)
            op.captured = True
            _require_success_or_conflict(op, args, git.merge_no_edit(cwd, branch))

        case Rebase(branch=branch):
            op.previous_sha = _current_sha(op, args)
            op.on_branch = git.get_current_branch(cwd)
            op.captured = True
            _require_success_or_conflict(op, args, git.rebase(cwd, branch))

        case AbortMerge():
            _require_success(op, git.abort_merge(cwd))

        case ContinueMerge():
            if git.has_merge_in_progress(cwd):
                _require_success(op, git.continue_merge(cwd))

        case AbortRebase():
            _require_success(op, git.abort_rebase(cwd))

        case ContinueRebase():
            if git.has_rebase_in_progress(cwd):
                _require_success_or_conflict(op, args, git.continue_rebase(cwd))

        case Push(branch=branch, force=force, set_upstream=set_upstream):
            op.previous_remote_sha = git.get_branch_head(cwd, tracking_branch(branch))
            op.captured = True
            _require_success(
                op, git.push_branch(cwd, branch, force=force, set_upstream=set_upstream)
            )

        case ResetRemoteBranch(branch=branch, sha=sha):
            op.previous_remote_sha = git.get_branch_head(cwd, tracking_branch(branch))
            op.captured = True
            _require_success(op, git.reset_remote_branch(cwd, branch, sha))

        case DeleteLocalBranch(branch=branch, force=force):
            op.previous_sha = git.get_branch_head(cwd, branch)
            if op.previous_sha is None:
                raise FatalFailure(describe_opcode(op), f"branch '{branch}' does not exist")
            op.captured = True
            _require_success(op, git.delete_local_branch(cwd, branch, force=force))

        case DeleteRemoteBranch(branch=branch):
            op.previous_sha = git.get_branch_head(cwd, tracking_branch(branch))
            op.captured = True
            _require_success(op, git.delete_remote_branch(cwd, branch))

        case ResetToSha(sha=sha):
            op.previous_sha = _current_sha(op, args)
            op.captured = True
            _require_success(op, git.reset_hard(cwd, sha))

        case SetParent(branch=branch, parent=parent):
            op.previous_parent = args.lineage.parent(branch)
            op.captured = True
            _mutate_lineage(op, args, lambda lineage: lineage.set_parent(branch, parent))

        case RemoveParent(branch=branch):
            op.previous_parent = args.lineage.parent(branch)
            op.captured = True
            _mutate_lineage(op, args, lambda lineage: lineage.remove_parent(branch))

        case AddRemote(name=name, url=url):
            _require_success(op, git.add_remote(cwd, name, url))

        case RemoveRemote(name=name):
            op.previous_url = git.get_remote_url(cwd, name)
            op.captured = True
            _require_success(op, git.remove_remote(cwd, name))

        case MergeProposal(number=number, message=message):
            if args.connector is None:
                return
            try:
                args.connector.merge_proposal(number, message)
            except RuntimeError as e:
                raise FatalFailure(describe_opcode(op), str(e)) from e

        case UpdateProposalTarget(number=number, target=target):
            if args.connector is None:
                return
            try:
                args.connector.update_proposal_target(number, target)
            except RuntimeError as e:
                raise FatalFailure(describe_opcode(op), str(e)) from e


def _current_sha(op: Opcode, args: RunArgs) -> str:
    try:
        return args.git.get_current_sha(args.repo_root)
    except RuntimeError as e:
        raise FatalFailure(describe_opcode(op), str(e)) from e


def _require_success(op: Opcode, result: CommandResult) -> None:
    if not result.success:
        raise FatalFailure(describe_opcode(op), result.output)


def _require_success_or_conflict(op: Opcode, args: RunArgs, result: CommandResult) -> None:
    if result.success:
        return
    if is_conflict_output(result) or args.git.has_conflicts(args.repo_root):
        raise ConflictFailure(describe_opcode(op), result.output)
    raise FatalFailure(describe_opcode(op), result.output)


def _mutate_lineage(op: Opcode, args: RunArgs, mutation: Callable[[Lineage], None]) -> None:
    try:
        mutation(args.lineage)
    except StacktownError as e:
        raise FatalFailure(describe_opcode(op), str(e)) from e
    args.save_lineage(args.lineage)


# ============================================================================
# abort / continue / undo
# ============================================================================


def abort_steps(op: Opcode) -> list[Opcode]:
    """Opcodes that cancel a conflicting, in-progress run of `op`."""
    match op:
        case Merge():
            return [AbortMerge()]
        case Rebase() | ContinueRebase():
            return [AbortRebase()]
        case _:
            return []


def continue_steps(op: Opcode) -> list[Opcode]:
    """Opcodes that complete `op` once the user resolved its conflicts."""
    match op:
        case Merge():
            return [ContinueMerge()]
        case Rebase(on_branch=on_branch) | ContinueRebase(on_branch=on_branch):
            return [ContinueRebase(on_branch=on_branch)]
        case _:
            return []


def undo_steps(op: Opcode) -> list[Opcode]:
    """Opcodes that reverse the effect of a successful `op`.

    Raises:
        InternalError: If `op` needs pre-action state that was never captured
    """
    match op:
        case Checkout(previous_branch=previous, branch=branch):
            _require_captured(op)
            if previous is None or previous == branch:
                return []
            return [Checkout(branch=previous)]

        case CreateBranch(branch=branch):
            return [DeleteLocalBranch(branch=branch, force=True)]

        case Merge(previous_sha=previous) | Rebase(previous_sha=previous):
            return [ResetToSha(sha=_captured_value(op, previous))]

        case ResetToSha(previous_sha=previous):
            return [ResetToSha(sha=_captured_value(op, previous))]

        case Push(branch=branch, previous_remote_sha=previous) | ResetRemoteBranch(
            branch=branch, previous_remote_sha=previous
        ):
            _require_captured(op)
            if previous is None:
                return [DeleteRemoteBranch(branch=branch)]
            return [ResetRemoteBranch(branch=branch, sha=previous)]

        case DeleteLocalBranch(branch=branch, previous_sha=previous):
            return [CreateBranch(branch=branch, start_point=_captured_value(op, previous))]

        case DeleteRemoteBranch(branch=branch, previous_sha=previous):
            _require_captured(op)
            if previous is None:
                return []
            return [ResetRemoteBranch(branch=branch, sha=previous)]

        case SetParent(branch=branch, previous_parent=previous):
            _require_captured(op)
            if previous is None:
                return [RemoveParent(branch=branch)]
            return [SetParent(branch=branch, parent=previous)]

        case RemoveParent(branch=branch, previous_parent=previous):
            _require_captured(op)
            if previous is None:
                return []
            return [SetParent(branch=branch, parent=previous)]

        case AddRemote(name=name):
            return [RemoveRemote(name=name)]

        case RemoveRemote(name=name, previous_url=previous):
            _require_captured(op)
            if previous is None:
                return []
            return [AddRemote(name=name, url=previous)]

        case UpdateProposalTarget(number=number, target=target, previous_target=previous):
            return [UpdateProposalTarget(number=number, target=previous, previous_target=target)]

        case _:
            return []


def _require_captured(op: Opcode) -> None:
    if not getattr(op, "captured", False):
        raise InternalError(f"cannot compute undo for '{describe_opcode(op)}': it never ran")


def _captured_value(op: Opcode, value: str | None) -> str:
    _require_captured(op)
    if value is None:
        raise InternalError(f"'{describe_opcode(op)}' ran without recording its prior state")
    return value


def target_branch(op: Opcode) -> str | None:
    """Return the branch `op` acts on, or None when it is not known."""
    match op:
        case (
            Checkout(branch=branch)
            | CreateBranch(branch=branch)
            | Push(branch=branch)
            | ResetRemoteBranch(branch=branch)
            | DeleteLocalBranch(branch=branch)
            | DeleteRemoteBranch(branch=branch)
            | SetParent(branch=branch)
            | RemoveParent(branch=branch)
        ):
            return branch
        case (
            Merge(on_branch=on_branch)
            | Rebase(on_branch=on_branch)
            | ContinueRebase(on_branch=on_branch)
        ):
            return on_branch
        case _:
            return None


def has_captured_state(op: Opcode) -> bool:
    """Check whether `op` ran far enough to record its pre-action state."""
    return bool(getattr(op, "captured", False))


def is_skippable(op: Opcode) -> bool:
    """Whether a conflict in this kind of opcode can be skipped."""
    return isinstance(op, Merge | Rebase | ContinueRebase)


# ============================================================================
# Presentation
# ============================================================================


def describe_opcode(op: Opcode) -> str:
    """Return the git-command-like description shown to the user."""
    match op:
        case Checkout(branch=branch):
            return f"git checkout {branch}"
        case CreateBranch(branch=branch, start_point=start_point):
            return f"git branch {branch} {start_point}"
        case Fetch():
            return "git fetch --prune --tags"
        case Merge(branch=branch):
            return f"git merge --no-edit {branch}"
        case Rebase(branch=branch):
            return f"git rebase {branch}"
        case AbortMerge():
            return "git merge --abort"
        case ContinueMerge():
            return "git commit --no-edit"
        case AbortRebase():
            return "git rebase --abort"
        case ContinueRebase():
            return "git rebase --continue"
        case Push(branch=branch, force=force, set_upstream=set_upstream):
            flags = " --force-with-lease" if force else ""
            flags += " -u" if set_upstream else ""
            return f"git push{flags} origin {branch}"
        case ResetRemoteBranch(branch=branch, sha=sha):
            return f"git push --force origin {sha}:{branch}"
        case DeleteLocalBranch(branch=branch, force=force):
            return f"git branch {'-D' if force else '-d'} {branch}"
        case DeleteRemoteBranch(branch=branch):
            return f"git push origin :{branch}"
        case ResetToSha(sha=sha):
            return f"git reset --hard {sha}"
        case SetParent(branch=branch, parent=parent):
            return f"set parent of {branch} to {parent}"
        case RemoveParent(branch=branch):
            return f"remove parent entry of {branch}"
        case AddRemote(name=name, url=url):
            return f"git remote add {name} {url}"
        case RemoveRemote(name=name):
            return f"git remote remove {name}"
        case MergeProposal(number=number):
            return f"merge pull request #{number}"
        case UpdateProposalTarget(number=number, target=target):
            return f"change target of pull request #{number} to {target}"
    raise InternalError(f"unknown opcode {op!r}")


# ============================================================================
# Serialization
# ============================================================================


def opcode_to_dict(op: Opcode) -> dict[str, Any]:
    """Serialize an opcode, including captured pre-action state."""
    return {"kind": opcode_kind(op), **dataclasses.asdict(op)}


def opcode_from_dict(data: Any) -> Opcode:
    """Deserialize an opcode. Unknown fields are ignored.

    Raises:
        PersistenceError: For an unknown kind or missing/invalid fields
    """
    if not isinstance(data, dict):
        raise PersistenceError(f"opcode record must be an object, got {type(data).__name__}")

    kind = data.get("kind")
    cls = OPCODE_KINDS.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise PersistenceError(f"unknown opcode kind: {kind!r}")

    known = {f.name for f in dataclasses.fields(cls)}
    params = {key: value for key, value in data.items() if key in known}
    try:
        return cls(**params)
    except TypeError as e:
        raise PersistenceError(f"invalid '{kind}' opcode record: {e}") from e
