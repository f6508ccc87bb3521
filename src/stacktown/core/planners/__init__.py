"""Planners compile a command into a program of opcodes.

Planners only read repository state; every mutation happens later, when the
executor runs the returned program.
"""

from stacktown.core.planners.common import PlanInputs
from stacktown.core.planners.hack import plan_hack
from stacktown.core.planners.kill import plan_kill
from stacktown.core.planners.rename import plan_rename
from stacktown.core.planners.ship import plan_ship
from stacktown.core.planners.sync import plan_sync

__all__ = [
    "PlanInputs",
    "plan_hack",
    "plan_kill",
    "plan_rename",
    "plan_ship",
    "plan_sync",
]
