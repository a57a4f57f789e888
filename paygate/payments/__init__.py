"""
Payment construction and trustless verification.
"""
from paygate.payments.builder import (
    LAMPORTS_PER_SOL,
    build_payment_transaction,
    create_memo_instruction,
)
from paygate.payments.config import resolve_receiver_config
from paygate.payments.models import (
    Currency,
    PaymentReceipt,
    PaymentRequest,
    PremiumAccessInput,
    ReceiverConfig,
    UnsignedTransaction,
)
from paygate.payments.verifier import MIN_SIGNATURE_LENGTH, verify_payment

__all__ = [
    "LAMPORTS_PER_SOL",
    "MIN_SIGNATURE_LENGTH",
    "Currency",
    "PaymentReceipt",
    "PaymentRequest",
    "PremiumAccessInput",
    "ReceiverConfig",
    "UnsignedTransaction",
    "build_payment_transaction",
    "create_memo_instruction",
    "resolve_receiver_config",
    "verify_payment",
]
