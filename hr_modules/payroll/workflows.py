"""Payroll Workflows.

State machine for payroll run processing.
"""

from hr_kernel.domain.workflow import Guard, Transition, Workflow
from hr_kernel.logging_config import get_logger

logger = get_logger("modules.payroll.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

LOAN_LEDGER_APPLIED = Guard(
    name="loan_ledger_applied",
    description="Every loan deduction line of the run was applied to its loan in one unit",
)

logger.info(
    "payroll_workflow_guards_defined",
    extra={"guards": [LOAN_LEDGER_APPLIED.name]},
)


# -----------------------------------------------------------------------------
# Payroll Run Workflow
# -----------------------------------------------------------------------------

PAYROLL_RUN_WORKFLOW = Workflow(
    name="payroll_run",
    description="Monthly payroll run lifecycle",
    initial_state="draft",
    states=(
        "draft",
        "calculated",
        "approved",
        "completed",
    ),
    transitions=(
        Transition("draft", "calculated", action="calculate"),
        Transition("calculated", "approved", action="approve"),
        Transition("calculated", "completed", action="complete",
                   guard=LOAN_LEDGER_APPLIED, mutates_ledger=True),
        Transition("approved", "completed", action="complete",
                   guard=LOAN_LEDGER_APPLIED, mutates_ledger=True),
    ),
    terminal_states=("completed",),
)

logger.info(
    "payroll_run_workflow_registered",
    extra={
        "workflow_name": PAYROLL_RUN_WORKFLOW.name,
        "state_count": len(PAYROLL_RUN_WORKFLOW.states),
        "transition_count": len(PAYROLL_RUN_WORKFLOW.transitions),
        "initial_state": PAYROLL_RUN_WORKFLOW.initial_state,
    },
)
