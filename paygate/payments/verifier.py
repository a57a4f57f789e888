"""
Payment verifier: proves from ledger state that `wallet` paid the receiver.

Nothing the client sends is trusted beyond the signature used as a lookup key.
Every outcome that is a fact about the transaction raises a permanent
PaymentVerificationError; ledger query failures propagate as they are so the
hosting retry policy re-runs the step.
"""
from __future__ import annotations

import logging

from paygate.core.errors import (
    FailureKind,
    LedgerRequestRejected,
    PaymentVerificationError,
)
from paygate.ledger.base import (
    COMMITMENT_CONFIRMED,
    MAX_SUPPORTED_TRANSACTION_VERSION,
    LedgerLookup,
)
from paygate.ledger.network import USDC_MINTS, canonical_address, normalize_network
from paygate.ledger.records import TransactionRecord
from paygate.payments.models import PaymentReceipt, PremiumAccessInput, ReceiverConfig

logger = logging.getLogger(__name__)

MIN_SIGNATURE_LENGTH = 10


def verify_payment(
    access: PremiumAccessInput,
    receiver_config: ReceiverConfig,
    ledger: LedgerLookup,
) -> PaymentReceipt:
    """
    Check, in order: signature shape, addresses, receiver config, transaction
    presence and success, that the claimed wallet signed it, and that the
    receiver's SOL or USDC balance went up. Returns the receipt unchanged
    from the input (wallet, feature).
    """
    signature = (access.tx_signature or "").strip()
    if len(signature) < MIN_SIGNATURE_LENGTH:
        raise PaymentVerificationError(
            FailureKind.INVALID_SIGNATURE,
            "Invalid transaction signature; refusing to retry",
        )

    wallet = _canonical(access.wallet, "wallet")
    if not receiver_config.receiver_address:
        raise PaymentVerificationError(
            FailureKind.MISCONFIGURED_RECEIVER,
            "Receiver address is not configured",
        )
    receiver = _canonical(receiver_config.receiver_address, "receiver")
    network = normalize_network(receiver_config.network)

    try:
        raw = ledger.get_parsed_transaction(
            signature,
            commitment=COMMITMENT_CONFIRMED,
            max_supported_version=MAX_SUPPORTED_TRANSACTION_VERSION,
        )
    except LedgerRequestRejected as e:
        # The node refused the signature itself (not base58 / wrong size).
        raise PaymentVerificationError(
            FailureKind.INVALID_SIGNATURE,
            f"Invalid transaction signature: {e}",
        ) from e

    if raw is None:
        raise PaymentVerificationError(
            FailureKind.TRANSACTION_NOT_FOUND,
            f"Transaction {signature} not found at {COMMITMENT_CONFIRMED} commitment",
        )

    record = TransactionRecord.from_rpc(signature, raw)
    if not record.succeeded:
        raise PaymentVerificationError(
            FailureKind.TRANSACTION_FAILED,
            f"Transaction {signature} failed on-chain",
        )

    # Without this anyone could replay a stranger's successful payment.
    if wallet not in record.signers():
        raise PaymentVerificationError(
            FailureKind.WALLET_DID_NOT_SIGN,
            f"Wallet {wallet} did not sign transaction {signature}",
        )

    native_delta = record.native_delta(receiver)
    mint = USDC_MINTS.get(network)
    token_delta = record.token_delta(receiver, mint) if mint else 0
    if native_delta <= 0 and token_delta <= 0:
        raise PaymentVerificationError(
            FailureKind.NO_PAYMENT_DETECTED,
            f"No payment to {receiver} detected in transaction {signature}",
            detail={"native_delta": native_delta, "token_delta": token_delta},
        )

    logger.info(
        "payment_verified",
        extra={
            "tx_signature": signature,
            "wallet": wallet,
            "feature": access.feature,
            "network": network,
        },
    )
    return PaymentReceipt(wallet=access.wallet, feature=access.feature)


def _canonical(address: str | None, role: str) -> str:
    try:
        return canonical_address(address)
    except ValueError as e:
        raise PaymentVerificationError(
            FailureKind.INVALID_ADDRESS,
            f"Invalid {role} address: {address!r}",
        ) from e
