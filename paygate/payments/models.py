"""
Payment DTOs: builder input/output, workflow input, receipt, receiver config.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction


class Currency(str, Enum):
    """NATIVE moves SOL lamports; TOKEN moves USDC through its token accounts."""

    NATIVE = "SOL"
    TOKEN = "USDC"


@dataclass
class PaymentRequest:
    """Input of build_payment_transaction. Not validated here; the builder does it."""

    amount: float
    currency: Currency
    payer: str
    receiver: str
    memo: str | None = None
    network: str | None = None


@dataclass(frozen=True)
class UnsignedTransaction:
    """[create receiver token account?, transfer, memo?] + fee payer. No signatures."""

    instructions: tuple[Instruction, ...]
    fee_payer: Pubkey

    def to_message(self, recent_blockhash: str) -> Message:
        return Message.new_with_blockhash(
            list(self.instructions),
            self.fee_payer,
            Hash.from_string(recent_blockhash),
        )

    def serialize(self, recent_blockhash: str) -> str:
        """Base64 wire transaction with empty signature slots, ready for a wallet to sign."""
        tx = Transaction.new_unsigned(self.to_message(recent_blockhash))
        return base64.b64encode(bytes(tx)).decode("ascii")


# ----- Workflow contract -----


class PremiumAccessInput(BaseModel):
    """Trigger input: {txSignature, wallet, feature?}."""

    tx_signature: str = Field(..., alias="txSignature")
    wallet: str
    feature: str | None = None

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class PaymentReceipt(BaseModel):
    """Produced only after verification succeeds. Carries no amount."""

    wallet: str
    feature: str | None = None

    model_config = {"frozen": True}


class ReceiverConfig(BaseModel):
    """Receiver and cluster, resolved once per operation and passed down explicitly."""

    network: str
    receiver_address: str | None = None
    rpc_url: str | None = None

    model_config = {"frozen": True}
