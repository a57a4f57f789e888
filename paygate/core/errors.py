"""
Failure taxonomy for building, verifying and unlocking.
Every error carries a FailureKind and an explicit `permanent` flag; the retry
policy only looks at the flag (see is_permanent).
"""
from enum import Enum
from typing import Any


class FailureKind(str, Enum):
    """Formal failure kinds. All but LEDGER_QUERY are permanent facts."""

    VALIDATION = "validation"
    UNSUPPORTED_NETWORK = "unsupported_network"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_ADDRESS = "invalid_address"
    MISCONFIGURED_RECEIVER = "misconfigured_receiver"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    TRANSACTION_FAILED = "transaction_failed"
    WALLET_DID_NOT_SIGN = "wallet_did_not_sign"
    NO_PAYMENT_DETECTED = "no_payment_detected"
    SIGNATURE_ALREADY_USED = "signature_already_used"
    LEDGER_QUERY = "ledger_query"  # RPC / transport, retryable


class PaygateError(Exception):
    """Base error; detail holds structured fields for logging."""

    kind: FailureKind = FailureKind.VALIDATION
    permanent: bool = True

    def __init__(
        self,
        message: str,
        kind: FailureKind | None = None,
        detail: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.detail = detail or {}


class PaymentValidationError(PaygateError):
    """Malformed economic input handed to the transaction builder."""

    kind = FailureKind.VALIDATION


class UnsupportedNetworkError(PaygateError):
    kind = FailureKind.UNSUPPORTED_NETWORK


class PaymentVerificationError(PaygateError):
    """Permanent fact about a submitted transaction; retrying cannot change it."""

    def __init__(self, kind: FailureKind, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message, kind=kind, detail=detail)


class LedgerQueryError(PaygateError):
    """RPC or transport failure while reading the ledger. Retryable."""

    kind = FailureKind.LEDGER_QUERY
    permanent = False

    def __init__(self, message: str, code: int | None = None, detail: dict[str, Any] | None = None):
        super().__init__(message, detail=detail)
        self.code = code


class LedgerRequestRejected(LedgerQueryError):
    """The node rejected the request parameters (JSON-RPC -32602). Not an outage."""


def is_permanent(exc: BaseException) -> bool:
    """True when no amount of re-execution can change the outcome."""
    return isinstance(exc, PaygateError) and exc.permanent
