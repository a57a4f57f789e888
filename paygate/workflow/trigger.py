"""
Starts premium access runs. One call = one run; completion is asynchronous.
"""
import logging

from paygate.payments.config import get_default_feature, resolve_receiver_config
from paygate.payments.models import PremiumAccessInput
from paygate.utils.metrics import workflow_triggers_total
from paygate.workflow.state import WorkflowRun

logger = logging.getLogger(__name__)


def trigger_workflow(access: PremiumAccessInput) -> dict:
    """
    Resolve the receiver config and the feature once and enqueue the VERIFYING
    step. The receipt, the stored unlock and the run result all carry the
    resolved feature.
    """
    from paygate.workflow.tasks import advance_workflow

    if not access.feature:
        access = access.model_copy(update={"feature": get_default_feature()})
    run = WorkflowRun(input=access, config=resolve_receiver_config())
    advance_workflow.apply_async(args=[run.model_dump(mode="json")])
    workflow_triggers_total.inc()
    logger.info(
        "workflow_triggered",
        extra={
            "run_id": run.run_id,
            "tx_signature": access.tx_signature,
            "wallet": access.wallet,
            "feature": access.feature,
            "network": run.config.network,
        },
    )
    return {"ok": True}
