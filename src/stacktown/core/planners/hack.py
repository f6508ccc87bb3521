"""Plan for `hack`: create a new feature branch."""

from stacktown.core.branch_names import normalize_branch_name
from stacktown.core.errors import ValidationError
from stacktown.core.opcodes import Checkout, CreateBranch, Fetch, Push, SetParent
from stacktown.core.planners.common import PlanInputs, ensure_can_start
from stacktown.core.program import Program


def plan_hack(inputs: PlanInputs, branch: str, parent: str | None = None) -> Program:
    """Create `branch` off `parent` (the main branch by default) and check it out.

    The new branch is pushed with upstream tracking when `push_new_branches`
    is configured and the repository is online.
    """
    ensure_can_start(inputs)

    branch = normalize_branch_name(branch)
    parent = normalize_branch_name(parent) if parent is not None else inputs.lineage.main_branch

    if inputs.has_local_branch(branch):
        raise ValidationError(f"a branch named '{branch}' already exists")
    if not inputs.has_local_branch(parent):
        raise ValidationError(f"there is no local branch named '{parent}'")

    program = Program()
    if inputs.online:
        program.append(Fetch())
    program.extend(
        [
            CreateBranch(branch=branch, start_point=parent),
            SetParent(branch=branch, parent=parent),
            Checkout(branch=branch),
        ]
    )
    if inputs.online and inputs.config.push_new_branches:
        program.append(Push(branch=branch, set_upstream=True))
    return program
