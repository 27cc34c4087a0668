"""
SRN Workflows (``supply_modules.srn.workflows``).

Responsibility
--------------
Declares the state machine for stock requisition notes.  ``SRNService``
calls ``SRN_WORKFLOW.require`` before every status change.

Invariants enforced
-------------------
* APPROVED, PARTIAL and REJECTED are terminal.
* An SRN is decided once: approval and rejection both leave SUBMITTED.
"""

from supply_kernel.domain.workflow import Transition, Workflow
from supply_kernel.logging_config import get_logger

logger = get_logger("modules.srn.workflows")


SRN_WORKFLOW = Workflow(
    name="SRN",
    description="Stock requisition note lifecycle",
    initial_state="DRAFT",
    states=("DRAFT", "SUBMITTED", "APPROVED", "PARTIAL", "REJECTED"),
    transitions=(
        Transition("DRAFT", "SUBMITTED", action="submit"),
        Transition("SUBMITTED", "APPROVED", action="approve"),
        Transition("SUBMITTED", "PARTIAL", action="approve"),
        Transition("SUBMITTED", "REJECTED", action="reject"),
    ),
    terminal_states=("APPROVED", "PARTIAL", "REJECTED"),
)

logger.info(
    "srn_workflow_registered",
    extra={
        "workflow_name": SRN_WORKFLOW.name,
        "state_count": len(SRN_WORKFLOW.states),
        "transition_count": len(SRN_WORKFLOW.transitions),
    },
)
