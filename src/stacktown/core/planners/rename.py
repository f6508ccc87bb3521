"""Plan for `rename`: give a feature branch a new name."""

from stacktown.core.branch_names import normalize_branch_name
from stacktown.core.errors import ValidationError
from stacktown.core.opcodes import (
    Checkout,
    CreateBranch,
    DeleteLocalBranch,
    DeleteRemoteBranch,
    Opcode,
    Push,
    RemoveParent,
    SetParent,
    UpdateProposalTarget,
)
from stacktown.core.planners.common import (
    PlanInputs,
    ensure_can_start,
    ensure_feature_branch,
    resolve_branch,
)
from stacktown.core.program import Program


def plan_rename(inputs: PlanInputs, new: str, old: str | None = None) -> Program:
    """Rename `old` (the current branch by default) to `new`.

    Lineage entries move to the new name, children are reparented, and on
    origin the new branch replaces the old one. Open proposals of children
    are retargeted before the old remote branch disappears.
    """
    initial = ensure_can_start(inputs)
    old = resolve_branch(inputs, old, initial)
    new = normalize_branch_name(new)
    parent = ensure_feature_branch(inputs, old, "rename")

    if new == old:
        raise ValidationError(f"'{old}' already has that name")
    if inputs.has_local_branch(new):
        raise ValidationError(f"a branch named '{new}' already exists")

    children = inputs.lineage.children(old)
    steps: list[Opcode] = [
        CreateBranch(branch=new, start_point=old),
        SetParent(branch=new, parent=parent),
    ]
    steps.extend(SetParent(branch=child, parent=new) for child in children)
    if initial == old:
        steps.append(Checkout(branch=new))

    if inputs.has_tracking_branch(old):
        steps.append(Push(branch=new, set_upstream=True))
        if inputs.connector is not None:
            for child in children:
                proposal = inputs.connector.find_proposal(child, old)
                if proposal is not None:
                    steps.append(
                        UpdateProposalTarget(
                            number=proposal.number, target=new, previous_target=old
                        )
                    )
        steps.append(DeleteRemoteBranch(branch=old))

    steps.append(DeleteLocalBranch(branch=old, force=True))
    steps.append(RemoveParent(branch=old))
    return Program(steps)
