"""Plan for `sync`: bring branches up to date with their tracking and parent branches."""

import logging

from stacktown.core.branch_names import tracking_branch
from stacktown.core.errors import ValidationError
from stacktown.core.opcodes import Checkout, Fetch, Merge, Opcode, Push, Rebase
from stacktown.core.planners.common import PlanInputs, ensure_can_start
from stacktown.core.program import Program

logger = logging.getLogger(__name__)


def plan_sync(
    inputs: PlanInputs, branches: list[str] | None = None, *, all_branches: bool = False
) -> Program:
    """Sync the given branches (the current one by default) and their ancestors.

    Ancestors are always processed before their descendants. Roots only pull
    their tracking branch; feature branches also take in their parent, using
    merge or rebase per `sync_feature_strategy`. The program ends on the
    branch that was checked out at the start.
    """
    initial = ensure_can_start(inputs)
    lineage = inputs.lineage

    if all_branches:
        requested = [*lineage.roots(), *lineage.branches()]
    elif branches:
        requested = list(branches)
    else:
        requested = [initial]

    to_sync: set[str] = set()
    for branch in requested:
        to_sync.add(branch)
        to_sync.update(lineage.ancestors(branch))

    ordered = [b for b in lineage.order_ancestors_first(to_sync) if inputs.has_local_branch(b)]
    for branch in requested:
        if branch not in ordered:
            raise ValidationError(f"there is no local branch named '{branch}'")
    logger.debug("Sync order: %s", ordered)

    program = Program()
    if inputs.online:
        program.append(Fetch())
    for branch in ordered:
        program.extend(_sync_branch(inputs, branch))
    program.append(Checkout(branch=initial))
    return program


def _sync_branch(inputs: PlanInputs, branch: str) -> list[Opcode]:
    lineage = inputs.lineage
    rebase = inputs.config.sync_feature_strategy == "rebase"
    has_tracking = inputs.has_tracking_branch(branch)
    steps: list[Opcode] = [Checkout(branch=branch)]

    if lineage.is_root(branch):
        if has_tracking:
            steps.append(Rebase(branch=tracking_branch(branch)))
            steps.append(Push(branch=branch))
        return steps

    parent = lineage.parent(branch)
    if parent is None:
        raise ValidationError(
            f"branch '{branch}' has no parent; set one with `stacktown config set-parent`"
        )

    if has_tracking:
        steps.append(_integrate(tracking_branch(branch), rebase))
    steps.append(_integrate(parent, rebase))

    if has_tracking:
        steps.append(Push(branch=branch, force=rebase))
    elif inputs.online and inputs.config.push_new_branches:
        steps.append(Push(branch=branch, set_upstream=True))
    return steps


def _integrate(source: str, rebase: bool) -> Opcode:
    if rebase:
        return Rebase(branch=source)
    return Merge(branch=source)
