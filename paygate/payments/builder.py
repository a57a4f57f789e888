"""
Unsigned payment transaction builder (SOL or USDC).

Instruction order is fixed: [create receiver token account?, transfer, memo?].
Given the same request and the same account-existence answers the output is identical.
Signing is left to the payer's wallet.
"""
from __future__ import annotations

import logging
import math

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from spl.memo.constants import MEMO_PROGRAM_ID
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)

from paygate.core.errors import PaymentValidationError
from paygate.ledger.base import COMMITMENT_CONFIRMED, LedgerLookup
from paygate.ledger.network import USDC_DECIMALS, parse_address, usdc_mint_for
from paygate.payments.models import Currency, PaymentRequest, UnsignedTransaction

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
# Transfer amounts are u64 on-chain.
MAX_BASE_UNITS = 2**64 - 1


def build_payment_transaction(request: PaymentRequest, ledger: LedgerLookup) -> UnsignedTransaction:
    """
    Build the unsigned transfer described by `request`.

    Raises PaymentValidationError for a bad amount or address or a payer
    without a USDC account, UnsupportedNetworkError for USDC on a cluster
    without a mint. The ledger is only asked whether token accounts exist.
    """
    if not _is_positive_finite(request.amount):
        raise PaymentValidationError("Amount must be greater than 0")

    payer = _parse(request.payer, "payer")
    receiver = _parse(request.receiver, "receiver")

    try:
        currency = Currency(request.currency)
    except ValueError as e:
        raise PaymentValidationError(f"Unsupported currency: {request.currency}") from e
    if currency is Currency.NATIVE:
        instructions = _native_transfer_instructions(payer, receiver, request.amount)
    else:
        instructions = _token_transfer_instructions(
            ledger, payer, receiver, request.amount, request.network
        )

    if request.memo:
        instructions.append(create_memo_instruction(request.memo))

    logger.info(
        "payment_transaction_built",
        extra={
            "wallet": str(payer),
            "network": request.network,
            "method": currency.value,
        },
    )
    return UnsignedTransaction(instructions=tuple(instructions), fee_payer=payer)


def _native_transfer_instructions(payer: Pubkey, receiver: Pubkey, amount: float) -> list[Instruction]:
    lamports = _to_base_units(amount, LAMPORTS_PER_SOL)
    if lamports <= 0:
        raise PaymentValidationError("Invalid SOL amount")
    if lamports > MAX_BASE_UNITS:
        raise PaymentValidationError("SOL amount is too large")
    return [transfer(TransferParams(from_pubkey=payer, to_pubkey=receiver, lamports=lamports))]


def _token_transfer_instructions(
    ledger: LedgerLookup,
    payer: Pubkey,
    receiver: Pubkey,
    amount: float,
    network: str | None,
) -> list[Instruction]:
    mint = usdc_mint_for(network)
    payer_ata = get_associated_token_address(payer, mint)
    receiver_ata = get_associated_token_address(receiver, mint)

    # The builder never pays for the payer's own token account.
    if ledger.get_account_info(str(payer_ata), commitment=COMMITMENT_CONFIRMED) is None:
        raise PaymentValidationError(
            "Wallet has no USDC token account; create or fund one in the wallet first",
            detail={"token_account": str(payer_ata)},
        )

    instructions: list[Instruction] = []
    if ledger.get_account_info(str(receiver_ata), commitment=COMMITMENT_CONFIRMED) is None:
        instructions.append(create_associated_token_account(payer, receiver, mint))

    atomic_amount = _to_base_units(amount, 10**USDC_DECIMALS)
    if atomic_amount <= 0:
        raise PaymentValidationError("Invalid USDC amount")
    if atomic_amount > MAX_BASE_UNITS:
        raise PaymentValidationError("USDC amount is too large")

    instructions.append(
        transfer_checked(
            TransferCheckedParams(
                program_id=TOKEN_PROGRAM_ID,
                source=payer_ata,
                mint=mint,
                dest=receiver_ata,
                owner=payer,
                amount=atomic_amount,
                decimals=USDC_DECIMALS,
            )
        )
    )
    return instructions


def create_memo_instruction(memo: str) -> Instruction:
    """Memo program instruction: UTF-8 payload, no accounts."""
    return Instruction(MEMO_PROGRAM_ID, memo.encode("utf-8"), [])


def _is_positive_finite(amount: object) -> bool:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return False
    return math.isfinite(amount) and amount > 0


def _to_base_units(amount: float, units_per_whole: int) -> int:
    """Round half up, as the wallet UI displays amounts."""
    return math.floor(amount * units_per_whole + 0.5)


def _parse(address: str, role: str) -> Pubkey:
    try:
        return parse_address(address)
    except ValueError as e:
        raise PaymentValidationError(f"Invalid {role} address: {address!r}") from e
