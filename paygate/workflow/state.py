"""
Premium access workflow as an explicit state machine.

VERIFYING -> WAITING_FINALITY -> UNLOCKING -> COMPLETED, or FAILED_FATAL.

advance() performs exactly one transition and its side effect. It never
sleeps and never persists: the finality wait is returned as `delay_seconds`
on the Step and the host (Celery countdown, or run_until_terminal) honours it.
Transient errors escape advance() untouched so the host can re-run the same
state; permanent errors become FAILED_FATAL.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable
from uuid import uuid4

from pydantic import BaseModel, Field

from paygate.core.errors import PaygateError, is_permanent
from paygate.payments.models import PaymentReceipt, PremiumAccessInput, ReceiverConfig

logger = logging.getLogger(__name__)

STATUS_UNLOCKING = "unlocking"


class WorkflowState(str, Enum):
    VERIFYING = "verifying"
    WAITING_FINALITY = "waiting_finality"
    UNLOCKING = "unlocking"
    COMPLETED = "completed"
    FAILED_FATAL = "failed_fatal"


TERMINAL_STATES = frozenset({WorkflowState.COMPLETED, WorkflowState.FAILED_FATAL})


class WorkflowRun(BaseModel):
    """One run: its input, the resolved receiver config and what the last step produced."""

    run_id: str = Field(default_factory=lambda: str(uuid4()))
    input: PremiumAccessInput
    config: ReceiverConfig
    state: WorkflowState = WorkflowState.VERIFYING
    receipt: PaymentReceipt | None = None
    error: str | None = None
    failure_kind: str | None = None

    model_config = {"frozen": True}

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def result(self) -> dict[str, Any]:
        """Outbound payload for terminal states."""
        if self.state == WorkflowState.COMPLETED and self.receipt is not None:
            return {
                "feature": self.receipt.feature,
                "status": STATUS_UNLOCKING,
                "wallet": self.receipt.wallet,
            }
        if self.state == WorkflowState.FAILED_FATAL:
            return {"error": self.error, "failure_kind": self.failure_kind}
        return {"run_id": self.run_id, "state": self.state.value}


@dataclass(frozen=True)
class Step:
    """Next run plus how long the host must wait before advancing it again."""

    run: WorkflowRun
    delay_seconds: float = 0.0


VerifyFn = Callable[[WorkflowRun], PaymentReceipt]
UnlockFn = Callable[[WorkflowRun], None]


def advance(
    run: WorkflowRun,
    *,
    verify: VerifyFn,
    unlock: UnlockFn,
    finality_wait_seconds: float,
) -> Step:
    """Execute the side effect of run.state and return the next state."""
    if run.is_terminal:
        return Step(run)

    try:
        if run.state == WorkflowState.VERIFYING:
            receipt = verify(run)
            return Step(
                _with(run, state=WorkflowState.WAITING_FINALITY, receipt=receipt),
                delay_seconds=finality_wait_seconds,
            )

        if run.state == WorkflowState.WAITING_FINALITY:
            # The wait itself was the delay attached to the previous Step.
            return Step(_with(run, state=WorkflowState.UNLOCKING))

        if run.state == WorkflowState.UNLOCKING:
            if run.receipt is None:
                raise RuntimeError(f"Run {run.run_id} reached UNLOCKING without a receipt")
            unlock(run)
            return Step(_with(run, state=WorkflowState.COMPLETED))
    except PaygateError as e:
        if not is_permanent(e):
            raise
        logger.warning(
            "workflow_failed_fatal",
            extra={
                "run_id": run.run_id,
                "state": run.state.value,
                "tx_signature": run.input.tx_signature,
                "wallet": run.input.wallet,
                "failure_kind": e.kind.value,
                "error": str(e),
            },
        )
        return Step(
            _with(
                run,
                state=WorkflowState.FAILED_FATAL,
                error=str(e),
                failure_kind=e.kind.value,
            )
        )

    raise ValueError(f"Unknown workflow state: {run.state}")


def run_until_terminal(
    run: WorkflowRun,
    *,
    verify: VerifyFn,
    unlock: UnlockFn,
    finality_wait_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
) -> WorkflowRun:
    """In-process host: advance until COMPLETED or FAILED_FATAL. No retries."""
    while not run.is_terminal:
        step = advance(
            run,
            verify=verify,
            unlock=unlock,
            finality_wait_seconds=finality_wait_seconds,
        )
        if step.delay_seconds > 0:
            sleep(step.delay_seconds)
        run = step.run
    return run


def _with(run: WorkflowRun, **changes: Any) -> WorkflowRun:
    return run.model_copy(update=changes)
