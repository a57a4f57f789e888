"""
Celery task: advance a premium access run by one state.

Each state is its own task execution, so each step is retried on its own.
Transient failures (ledger RPC, database or Redis connectivity) are retried with
exponential backoff up to celery_task_max_retries; permanent failures end the
run in FAILED_FATAL without a retry. The finality wait is a countdown on the
next execution, no worker sleeps.
"""
import logging

from celery import Task
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy.exc import OperationalError

from paygate.core.celery_app import celery_app
from paygate.core.config import settings
from paygate.core.errors import LedgerQueryError
from paygate.db.session import SessionLocal
from paygate.ledger.network import rpc_url_for
from paygate.ledger.rpc import SolanaRpcClient
from paygate.payments.config import get_default_feature, get_finality_wait_seconds
from paygate.payments.models import PaymentReceipt
from paygate.payments.verifier import verify_payment
from paygate.services.circuit_breaker import get_ledger_rpc_breaker
from paygate.services.unlocks import FeatureUnlockService
from paygate.utils.metrics import payment_verifications_total, workflow_runs_total
from paygate.workflow.state import WorkflowRun, WorkflowState, advance

logger = logging.getLogger(__name__)

# Redis backs the RPC circuit breaker state.
TRANSIENT_ERRORS = (
    LedgerQueryError,
    OperationalError,
    RedisConnectionError,
    RedisTimeoutError,
)


class WorkflowTask(Task):
    """
    Logs runs that ended on an exception. A transient error after the last
    retry is "failed_retries_exhausted"; anything else never retried is "crashed".
    """

    def on_failure(self, exc, task_id, args, kwargs, einfo) -> None:
        payload = args[0] if args else kwargs.get("payload") or {}
        if isinstance(exc, TRANSIENT_ERRORS) and self.request.retries >= self.max_retries:
            outcome = "failed_retries_exhausted"
        else:
            outcome = "crashed"
        workflow_runs_total.labels(state=outcome).inc()
        logger.error(
            f"workflow_{outcome}",
            extra={
                "run_id": payload.get("run_id"),
                "state": payload.get("state"),
                "error": f"{type(exc).__name__}: {exc}",
            },
        )


def verify_step(run: WorkflowRun) -> PaymentReceipt:
    """VERIFYING side effect: fresh RPC client per execution, closed afterwards."""
    ledger = SolanaRpcClient(
        rpc_url_for(run.config.network, run.config.rpc_url),
        breaker=get_ledger_rpc_breaker(),
    )
    try:
        receipt = verify_payment(run.input, run.config, ledger)
    except TRANSIENT_ERRORS:
        payment_verifications_total.labels(outcome="transient").inc()
        raise
    except Exception as e:
        outcome = getattr(getattr(e, "kind", None), "value", "error")
        payment_verifications_total.labels(outcome=outcome).inc()
        raise
    finally:
        ledger.close()
    payment_verifications_total.labels(outcome="verified").inc()
    return receipt


def unlock_step(run: WorkflowRun) -> None:
    """UNLOCKING side effect. Idempotent per transaction signature."""
    db = SessionLocal()
    try:
        FeatureUnlockService(db).grant(
            tx_signature=run.input.tx_signature,
            wallet=run.receipt.wallet,
            feature=run.receipt.feature or get_default_feature(),
            network=run.config.network,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@celery_app.task(
    bind=True,
    base=WorkflowTask,
    name="paygate.workflow.tasks.advance_workflow",
    autoretry_for=TRANSIENT_ERRORS,
    retry_backoff=settings.celery_task_retry_delay,
    retry_backoff_max=settings.celery_task_retry_backoff_max,
    retry_jitter=True,
    max_retries=settings.celery_task_max_retries,
)
def advance_workflow(self, payload: dict) -> dict:
    """Run the side effect of the current state, then schedule the next state."""
    run = WorkflowRun.model_validate(payload)
    logger.info(
        "workflow_step_started",
        extra={
            "run_id": run.run_id,
            "state": run.state.value,
            "tx_signature": run.input.tx_signature,
            "attempt": self.request.retries,
        },
    )

    step = advance(
        run,
        verify=verify_step,
        unlock=unlock_step,
        finality_wait_seconds=get_finality_wait_seconds(),
    )
    next_run = step.run

    if next_run.is_terminal:
        workflow_runs_total.labels(state=next_run.state.value).inc()
        log = logger.info if next_run.state == WorkflowState.COMPLETED else logger.warning
        log(
            "workflow_finished",
            extra={
                "run_id": next_run.run_id,
                "state": next_run.state.value,
                "wallet": next_run.input.wallet,
                "feature": next_run.input.feature,
                "failure_kind": next_run.failure_kind,
            },
        )
        return next_run.result()

    countdown = step.delay_seconds or None
    advance_workflow.apply_async(
        args=[next_run.model_dump(mode="json")],
        countdown=countdown,
    )
    logger.info(
        "workflow_step_scheduled",
        extra={
            "run_id": next_run.run_id,
            "state": run.state.value,
            "next_state": next_run.state.value,
            "countdown": countdown,
        },
    )
    return next_run.result()
