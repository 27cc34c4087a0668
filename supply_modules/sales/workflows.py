"""
Sales Workflows (``supply_modules.sales.workflows``).

Commissions accrue PENDING on each sale and are paid out once.  PAID is
terminal.
"""

from supply_kernel.domain.workflow import Transition, Workflow
from supply_kernel.logging_config import get_logger

logger = get_logger("modules.sales.workflows")


COMMISSION_WORKFLOW = Workflow(
    name="Commission",
    description="Retail commission payout lifecycle",
    initial_state="PENDING",
    states=("PENDING", "PAID"),
    transitions=(
        Transition("PENDING", "PAID", action="mark_paid"),
    ),
    terminal_states=("PAID",),
)

logger.info(
    "sales_workflow_registered",
    extra={
        "workflow_name": COMMISSION_WORKFLOW.name,
        "state_count": len(COMMISSION_WORKFLOW.states),
        "transition_count": len(COMMISSION_WORKFLOW.transitions),
    },
)
