"""Plan for `ship`: land a feature branch into its parent."""

import logging

from stacktown.core.branch_names import tracking_branch
from stacktown.core.errors import ValidationError
from stacktown.core.opcodes import (
    Checkout,
    DeleteLocalBranch,
    DeleteRemoteBranch,
    Fetch,
    Merge,
    MergeProposal,
    Opcode,
    Push,
    Rebase,
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

logger = logging.getLogger(__name__)


def plan_ship(inputs: PlanInputs, branch: str | None = None, message: str | None = None) -> Program:
    """Ship `branch` (the current one by default) into its parent.

    The parent must be the main branch or a perennial branch. With a hosting
    connector and an open proposal, the proposal is merged on the host and
    the parent is updated from origin; otherwise the branch is merged locally
    and the parent pushed.
    """
    initial = ensure_can_start(inputs)
    branch = resolve_branch(inputs, branch, initial)
    parent = ensure_feature_branch(inputs, branch, "ship")
    lineage = inputs.lineage

    if not lineage.is_root(parent):
        raise ValidationError(
            f"shipping '{branch}' requires shipping its parent '{parent}' first"
        )

    proposal = None
    if inputs.connector is not None and inputs.online:
        proposal = inputs.connector.find_proposal(branch, parent)
        logger.debug("Proposal for %s: %s", branch, proposal)

    steps: list[Opcode] = []
    if inputs.online:
        steps.append(Fetch())

    parent_tracked = inputs.has_tracking_branch(parent)
    branch_tracked = inputs.has_tracking_branch(branch)

    steps.append(Checkout(branch=parent))
    if parent_tracked:
        steps.append(Rebase(branch=tracking_branch(parent)))
    steps.append(Checkout(branch=branch))
    if branch_tracked:
        steps.append(Merge(branch=tracking_branch(branch)))
    steps.append(Merge(branch=parent))

    if proposal is not None:
        if branch_tracked:
            steps.append(Push(branch=branch))
        steps.append(
            MergeProposal(number=proposal.number, message=message or proposal.title)
        )
        steps.append(Fetch())
        steps.append(Checkout(branch=parent))
        steps.append(Rebase(branch=tracking_branch(parent)))
    else:
        steps.append(Checkout(branch=parent))
        steps.append(Merge(branch=branch))
        if parent_tracked:
            steps.append(Push(branch=parent))

    for child in lineage.children(branch):
        steps.append(SetParent(branch=child, parent=parent))
        if inputs.connector is not None and inputs.online:
            child_proposal = inputs.connector.find_proposal(child, branch)
            if child_proposal is not None:
                steps.append(
                    UpdateProposalTarget(
                        number=child_proposal.number, target=parent, previous_target=branch
                    )
                )

    if branch_tracked:
        steps.append(DeleteRemoteBranch(branch=branch))
    steps.append(DeleteLocalBranch(branch=branch, force=True))
    steps.append(RemoveParent(branch=branch))
    if initial != branch:
        steps.append(Checkout(branch=initial))
    return Program(steps)
