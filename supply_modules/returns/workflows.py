"""
Returns Workflows (``supply_modules.returns.workflows``).

Responsibility
--------------
State machine for retailer returns.  A return may be resolved straight
from RAISED or after an UNDER_REVIEW step; every resolution is terminal.

Invariants enforced
-------------------
* A resolved return cannot be reopened or resolved again.
"""

from supply_kernel.domain.workflow import Transition, Workflow
from supply_kernel.logging_config import get_logger

logger = get_logger("modules.returns.workflows")

_RESOLUTIONS = ("APPROVED_RESTOCK", "APPROVED_REPLACE", "REJECTED")


RETURN_WORKFLOW = Workflow(
    name="Return",
    description="Retailer return lifecycle",
    initial_state="RAISED",
    states=("RAISED", "UNDER_REVIEW") + _RESOLUTIONS,
    transitions=(
        Transition("RAISED", "UNDER_REVIEW", action="review"),
        *(
            Transition(source, target, action="resolve")
            for source in ("RAISED", "UNDER_REVIEW")
            for target in _RESOLUTIONS
        ),
    ),
    terminal_states=_RESOLUTIONS,
)

logger.info(
    "returns_workflow_registered",
    extra={
        "workflow_name": RETURN_WORKFLOW.name,
        "state_count": len(RETURN_WORKFLOW.states),
        "transition_count": len(RETURN_WORKFLOW.transitions),
    },
)
