"""Install planning, execution and rollback."""

from augent.installer.executor import execute_plan
from augent.installer.planner import InstallPlan, InstallPlanner, PlanAction, PlannedOperation, plan_install
from augent.installer.transaction import Transaction

__all__ = [
    "InstallPlan",
    "InstallPlanner",
    "PlanAction",
    "PlannedOperation",
    "Transaction",
    "execute_plan",
    "plan_install",
]
