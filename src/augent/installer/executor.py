"""Carry out an :class:`InstallPlan` inside a transaction."""

from __future__ import annotations

from pathlib import Path

from augent.core.logging.logger import get_logger
from augent.installer.planner import InstallPlan, PlanAction
from augent.installer.transaction import Transaction

logger = get_logger(__name__)


def execute_plan(plan: InstallPlan, workspace_root: Path, transaction: Transaction) -> int:
    """Apply the plan's writes and removals; returns the number of files touched."""
    touched = 0
    for operation in plan.operations:
        path = workspace_root / operation.location
        if operation.action.writes and operation.content is not None:
            transaction.write(path, operation.content)
        elif operation.action is PlanAction.REMOVE_STALE:
            transaction.delete(path)
        else:
            continue
        touched += 1
        logger.debug(
            "Applied install operation",
            data={"path": operation.location, "action": operation.action.value},
        )
    return touched
