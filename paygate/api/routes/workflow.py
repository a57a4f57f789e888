"""
Trigger endpoint: validates presence of txSignature and wallet, starts one run.
Acknowledges synchronously; verification and unlock happen in the worker.
"""
import logging
from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from paygate.payments.models import PremiumAccessInput
from paygate.workflow.trigger import trigger_workflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["workflow"])


@router.post("/run-workflow")
def run_workflow(body: dict[str, Any] = Body(...)) -> JSONResponse:
    tx_signature = body.get("txSignature")
    wallet = body.get("wallet")
    feature = body.get("feature")
    if not tx_signature or not wallet or not isinstance(tx_signature, str) or not isinstance(wallet, str):
        return JSONResponse({"error": "Invalid parameters"}, status_code=400)
    if feature is not None and not isinstance(feature, str):
        return JSONResponse({"error": "Invalid parameters"}, status_code=400)

    try:
        result = trigger_workflow(
            PremiumAccessInput(tx_signature=tx_signature, wallet=wallet, feature=feature)
        )
    except Exception as e:
        logger.exception("run_workflow_failed", extra={"tx_signature": tx_signature, "wallet": wallet})
        return JSONResponse({"error": str(e)}, status_code=500)
    return JSONResponse(result)
