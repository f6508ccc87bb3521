"""Plan for `kill`: delete a feature branch locally and remotely."""

from stacktown.core.opcodes import (
    Checkout,
    DeleteLocalBranch,
    DeleteRemoteBranch,
    Opcode,
    RemoveParent,
    SetParent,
)
from stacktown.core.planners.common import (
    PlanInputs,
    ensure_can_start,
    ensure_feature_branch,
    resolve_branch,
)
from stacktown.core.program import Program


def plan_kill(inputs: PlanInputs, branch: str | None = None) -> Program:
    """Delete `branch` (the current one by default).

    Children of the killed branch are reparented to its parent. When the
    killed branch is checked out, the program switches to the parent first.
    """
    initial = ensure_can_start(inputs)
    branch = resolve_branch(inputs, branch, initial)
    parent = ensure_feature_branch(inputs, branch, "kill")

    steps: list[Opcode] = [
        SetParent(branch=child, parent=parent) for child in inputs.lineage.children(branch)
    ]
    if initial == branch:
        steps.append(Checkout(branch=parent))
    if inputs.has_tracking_branch(branch):
        steps.append(DeleteRemoteBranch(branch=branch))
    steps.append(DeleteLocalBranch(branch=branch, force=True))
    steps.append(RemoveParent(branch=branch))
    return Program(steps)
