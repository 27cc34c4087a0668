"""
Dispatch Workflows (``supply_modules.dispatch.workflows``).

Responsibility
--------------
State machines for dispatch orders and goods received notes.

Invariants enforced
-------------------
* A dispatch moves PENDING -> IN_TRANSIT -> DELIVERED and never back.
* A dispatch is DELIVERED only by confirming its GRN.
"""

from supply_kernel.domain.workflow import Transition, Workflow
from supply_kernel.logging_config import get_logger

logger = get_logger("modules.dispatch.workflows")


DISPATCH_WORKFLOW = Workflow(
    name="DispatchOrder",
    description="Dispatch order lifecycle",
    initial_state="PENDING",
    states=("PENDING", "IN_TRANSIT", "DELIVERED"),
    transitions=(
        Transition("PENDING", "IN_TRANSIT", action="execute"),
        Transition("IN_TRANSIT", "DELIVERED", action="deliver"),
    ),
    terminal_states=("DELIVERED",),
)

GRN_WORKFLOW = Workflow(
    name="GRN",
    description="Goods received note lifecycle",
    initial_state="PENDING",
    states=("PENDING", "CONFIRMED"),
    transitions=(
        Transition("PENDING", "CONFIRMED", action="confirm"),
    ),
    terminal_states=("CONFIRMED",),
)

for _workflow in (DISPATCH_WORKFLOW, GRN_WORKFLOW):
    logger.info(
        "dispatch_workflow_registered",
        extra={
            "workflow_name": _workflow.name,
            "state_count": len(_workflow.states),
            "transition_count": len(_workflow.transitions),
        },
    )
