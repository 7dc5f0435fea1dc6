"""Leave Workflows.

State machine for leave request decisions.  Only pending requests can be
decided; every decision is final.
"""

from hr_kernel.domain.workflow import Transition, Workflow
from hr_kernel.logging_config import get_logger

logger = get_logger("modules.leave.workflows")


LEAVE_REQUEST_WORKFLOW = Workflow(
    name="leave_request",
    description="Leave request lifecycle",
    initial_state="pending",
    states=("pending", "approved", "rejected", "cancelled"),
    transitions=(
        Transition("pending", "approved", action="approve"),
        Transition("pending", "rejected", action="reject"),
        Transition("pending", "cancelled", action="cancel"),
    ),
    terminal_states=("approved", "rejected", "cancelled"),
)

logger.info(
    "leave_request_workflow_registered",
    extra={
        "workflow_name": LEAVE_REQUEST_WORKFLOW.name,
        "state_count": len(LEAVE_REQUEST_WORKFLOW.states),
        "transition_count": len(LEAVE_REQUEST_WORKFLOW.transitions),
    },
)
