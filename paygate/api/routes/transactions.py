"""
Build endpoint: returns the unsigned payment transaction for the payer's wallet to sign.
Errors are PaygateError and mapped by the handlers in paygate.main.
"""
import base64

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from paygate.core.config import settings
from paygate.core.errors import FailureKind, PaymentVerificationError
from paygate.ledger.base import COMMITMENT_CONFIRMED, LedgerLookup
from paygate.payments.builder import build_payment_transaction
from paygate.payments.models import Currency, PaymentRequest, ReceiverConfig
from paygate.api.deps import get_ledger, get_receiver_config

router = APIRouter(prefix="/api", tags=["transactions"])


class BuildTransactionBody(BaseModel):
    payer: str
    amount: float
    currency: Currency = Currency.TOKEN
    memo: str | None = Field(default_factory=lambda: settings.default_memo)


class InstructionOut(BaseModel):
    program_id: str
    accounts: list[str]
    data: str  # base64


class BuildTransactionOut(BaseModel):
    transaction: str  # base64 wire transaction, signatures empty
    blockhash: str
    fee_payer: str
    network: str
    instructions: list[InstructionOut]


@router.post("/transactions", response_model=BuildTransactionOut)
def build_transaction(
    body: BuildTransactionBody,
    config: ReceiverConfig = Depends(get_receiver_config),
    ledger: LedgerLookup = Depends(get_ledger),
) -> BuildTransactionOut:
    if not config.receiver_address:
        raise PaymentVerificationError(
            FailureKind.MISCONFIGURED_RECEIVER,
            "Receiver address is not configured",
        )
    tx = build_payment_transaction(
        PaymentRequest(
            amount=body.amount,
            currency=body.currency,
            payer=body.payer,
            receiver=config.receiver_address,
            memo=body.memo,
            network=config.network,
        ),
        ledger,
    )
    blockhash = ledger.get_latest_blockhash(COMMITMENT_CONFIRMED)
    return BuildTransactionOut(
        transaction=tx.serialize(blockhash),
        blockhash=blockhash,
        fee_payer=str(tx.fee_payer),
        network=config.network,
        instructions=[
            InstructionOut(
                program_id=str(ix.program_id),
                accounts=[str(meta.pubkey) for meta in ix.accounts],
                data=base64.b64encode(bytes(ix.data)).decode("ascii"),
            )
            for ix in tx.instructions
        ],
    )
