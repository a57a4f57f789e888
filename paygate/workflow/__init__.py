"""
Premium access workflow: verify -> wait for finality -> unlock.
"""
from paygate.workflow.state import (
    STATUS_UNLOCKING,
    TERMINAL_STATES,
    Step,
    WorkflowRun,
    WorkflowState,
    advance,
    run_until_terminal,
)
from paygate.workflow.trigger import trigger_workflow

__all__ = [
    "STATUS_UNLOCKING",
    "TERMINAL_STATES",
    "Step",
    "WorkflowRun",
    "WorkflowState",
    "advance",
    "run_until_terminal",
    "trigger_workflow",
]
